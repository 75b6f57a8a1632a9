"""
Documents feature: PDF object storage on Supabase Storage.

Layout inside the bucket: `{user_id}/{document_id}/{kind}.pdf` where kind is
`original` or `processed`.
"""

import logging
from typing import Literal

from studybuddy.config import get_settings
from studybuddy.core.database import get_supabase_client

logger = logging.getLogger(__name__)

DocumentKind = Literal["original", "processed"]
DOCUMENT_KINDS: tuple[DocumentKind, ...] = ("original", "processed")


def get_document_path(user_id: str, document_id: str, kind: DocumentKind) -> str:
    return f"{user_id}/{document_id}/{kind}.pdf"


def store_document(pdf_bytes: bytes, user_id: str, document_id: str, kind: DocumentKind) -> str:
    """Upload (overwrite) a PDF and return its storage path."""
    settings = get_settings()
    path = get_document_path(user_id, document_id, kind)

    db = get_supabase_client()
    db.storage.from_(settings.DOCUMENT_BUCKET).upload(
        path=path,
        file=pdf_bytes,
        file_options={"content-type": "application/pdf", "upsert": "true"},
    )
    return path


def read_document(path: str) -> bytes:
    settings = get_settings()
    db = get_supabase_client()
    return db.storage.from_(settings.DOCUMENT_BUCKET).download(path)


def delete_document_files(user_id: str, document_id: str) -> None:
    """Remove both stored variants of a document."""
    settings = get_settings()
    db = get_supabase_client()
    paths = [get_document_path(user_id, document_id, kind) for kind in DOCUMENT_KINDS]
    db.storage.from_(settings.DOCUMENT_BUCKET).remove(paths)
