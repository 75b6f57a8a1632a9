"""Shared fixtures: test settings, an in-memory Supabase stand-in and PDF builders."""

import io
import os

# Settings are read at first use; these must exist before any studybuddy import runs get_settings().
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-service-key")
os.environ.setdefault("ENCRYPTION_SECRET_KEY", "ZmDfcTF7_60GrrY167zsiPd67pEvs0aGOv2oasOM1Pg=")
os.environ.setdefault("OPENROUTER_API_KEY", "shared-key")
os.environ.setdefault("GROQ_API_KEY", "groq-key")
os.environ.setdefault("EMBEDDING_DIMENSIONS", "3")
os.environ.setdefault("PAGE_RETRY_BASE_DELAY", "0")
os.environ.setdefault("PAGE_REQUEST_DELAY", "0")

import pytest
from pypdf import PdfWriter

from studybuddy.config import get_settings


# ── Settings ─────────────────────────────────────────────

@pytest.fixture
def settings(monkeypatch, tmp_path):
    """Fresh settings per test; attributes may be monkeypatched freely."""
    get_settings.cache_clear()
    s = get_settings()
    monkeypatch.setattr(s, "LECTURE_TEMP_PATH", str(tmp_path / "lectures"))
    yield s
    get_settings.cache_clear()


# ── Fake Supabase ────────────────────────────────────────

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.columns = None
        self.filters: dict = {}

    def select(self, columns="*"):
        self.op = "select"
        self.columns = columns
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, _n):
        return self

    def execute(self):
        self.db.calls.append((self.table, self.op, self.payload, dict(self.filters)))
        if self.table in self.db.fail_tables and self.op in ("insert", "update", "delete"):
            raise RuntimeError(f"write to {self.table} failed")
        if self.op == "select":
            rows = self.db.rows.get(self.table, [])
            rows = [r for r in rows if all(r.get(k) == v for k, v in self.filters.items())]
            return FakeResponse(rows)
        if self.op == "insert":
            return FakeResponse(self.payload)
        return FakeResponse([])


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: dict):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        return FakeResponse(self.db.rpc_results.get(self.name, []))


class FakeBucket:
    def __init__(self, db: "FakeSupabase", bucket: str):
        self.db = db
        self.bucket = bucket

    def upload(self, path, file, file_options=None):
        self.db.files[(self.bucket, path)] = file
        return {"path": path}

    def download(self, path):
        return self.db.files[(self.bucket, path)]

    def remove(self, paths):
        for path in paths:
            self.db.files.pop((self.bucket, path), None)
        self.db.removed.extend(paths)
        return []


class FakeStorage:
    def __init__(self, db: "FakeSupabase"):
        self.db = db

    def from_(self, bucket):
        return FakeBucket(self.db, bucket)


class FakeSupabase:
    """Records every table / rpc / storage call made through it."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.rows: dict[str, list[dict]] = {}
        self.rpc_calls: list[tuple] = []
        self.rpc_results: dict[str, list[dict]] = {}
        self.files: dict[tuple, bytes] = {}
        self.removed: list[str] = []
        self.fail_tables: set[str] = set()
        self.storage = FakeStorage(self)

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)

    def writes(self, table: str, op: str) -> list:
        return [payload for t, o, payload, _ in self.calls if t == table and o == op]


_CLIENT_USERS = [
    "studybuddy.core.api_keys",
    "studybuddy.features.knowledge.retrieval",
    "studybuddy.features.documents.chunk_ingestion",
    "studybuddy.features.documents.storage",
    "studybuddy.background.document_tasks",
    "studybuddy.background.lecture_tasks",
]


@pytest.fixture
def fake_db(monkeypatch, settings):
    db = FakeSupabase()
    for module in _CLIENT_USERS:
        monkeypatch.setattr(f"{module}.get_supabase_client", lambda: db)
    return db


# ── PDFs ─────────────────────────────────────────────────

def build_pdf(num_pages: int, widths: list[int] | None = None) -> bytes:
    """Blank PDF; page i gets width widths[i] so pages can be told apart."""
    writer = PdfWriter()
    for i in range(num_pages):
        width = widths[i] if widths else 200 + i
        writer.add_blank_page(width=width, height=300)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_pdf():
    return build_pdf
