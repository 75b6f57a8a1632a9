"""
Security utilities: Fernet encryption for user-supplied (BYOK) API keys.
"""

from cryptography.fernet import Fernet

from studybuddy.config import get_settings


# ── Fernet Encryption (for BYOK keys) ───────────────────
def _get_fernet() -> Fernet:
    """Get Fernet instance from config secret key."""
    settings = get_settings()
    return Fernet(settings.ENCRYPTION_SECRET_KEY.encode())


def encrypt_value(plaintext: str) -> str:
    """Encrypt a string value using Fernet symmetric encryption.

    Returns the token as text so it can be stored in a plain column.
    """
    f = _get_fernet()
    return f.encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str | bytes) -> str:
    """Decrypt a Fernet-encrypted value back to string.

    Raises:
        InvalidToken: If the secret key is wrong or data is corrupted.
    """
    if isinstance(ciphertext, str):
        ciphertext = ciphertext.encode()
    f = _get_fernet()
    return f.decrypt(ciphertext).decode()
