import hashlib


def compute_checksum(data: bytes) -> str:
    """Lower-case hex SHA-256 of the whole document, used to spot re-uploads."""
    return hashlib.sha256(data).hexdigest()
