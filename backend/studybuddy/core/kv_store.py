"""
Key-value store abstraction for short-lived secrets (PKCE verifiers).

Callers inject a store instead of reaching for process-global maps. The TTL
implementation below is in-process only; a multi-instance deployment needs a
shared backend (Redis, a table) behind the same protocol.
"""

import threading
import time
from typing import Protocol

from cachetools import TLRUCache

from studybuddy.config import get_settings


class KeyValueStore(Protocol):
    """Minimal get/set/delete contract with per-key expiry."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_seconds: float) -> None: ...

    def delete(self, key: str) -> None: ...


def _entry_expiry(key: str, entry: tuple[str, float], now: float) -> float:
    return now + entry[1]


class TTLKeyValueStore:
    """KeyValueStore backed by a cachetools TLRU cache (per-item TTL)."""

    def __init__(self, maxsize: int = 1024, timer=time.monotonic):
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_entry_expiry, timer=timer)
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._cache.get(key)
        return entry[0] if entry else None

    def set(self, key: str, value: str, ttl_seconds: float) -> None:
        with self._lock:
            self._cache[key] = (value, ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)


# ── One-time verifier helpers ────────────────────────────

def _verifier_key(user_id: str) -> str:
    return f"pkce-verifier:{user_id}"


def store_verifier(store: KeyValueStore, user_id: str, verifier: str) -> None:
    """Store a PKCE verifier for a user, replacing any previous one."""
    ttl = get_settings().VERIFIER_TTL_SECONDS
    store.set(_verifier_key(user_id), verifier, ttl)


def retrieve_verifier(store: KeyValueStore, user_id: str) -> str | None:
    """Retrieve and delete a PKCE verifier (one-time use).

    Returns None if not found or expired.
    """
    key = _verifier_key(user_id)
    verifier = store.get(key)
    store.delete(key)
    return verifier
