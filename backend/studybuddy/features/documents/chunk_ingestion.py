"""
Documents feature: embed unique pages and write them to the slide knowledge table.
One chunk per slide; the slide number travels with the chunk explicitly.
"""

import logging

from studybuddy.config import get_settings
from studybuddy.core.database import get_supabase_client
from studybuddy.core.exceptions import ChunkMismatchError
from studybuddy.features.documents.schemas import ChunkData, SlideChunkMetadata, UniquePage
from studybuddy.features.knowledge.embedding import embed_batch
from studybuddy.features.knowledge.vector_utils import format_vector_literal

logger = logging.getLogger(__name__)


async def generate_chunk_embeddings(pages: list[UniquePage], api_key: str) -> list[list[float]]:
    """Embed page texts in one batch, in input order."""
    if not pages:
        return []
    return await embed_batch([p.content for p in pages], api_key)


def prepare_chunks(pages: list[UniquePage], embeddings: list[list[float]]) -> list[ChunkData]:
    """Zip pages with their embeddings 1:1.

    Raises:
        ChunkMismatchError: If the counts differ.
    """
    if len(pages) != len(embeddings):
        raise ChunkMismatchError(len(pages), len(embeddings))

    return [
        ChunkData(page_number=page.page_number, content=page.content, embedding=embedding)
        for page, embedding in zip(pages, embeddings)
    ]


def insert_chunks(
    chunks: list[ChunkData],
    document_id: str,
    course_id: str,
    user_id: str,
    filename: str,
) -> None:
    """Batch-insert slide chunks. Each embedding is validated as it is serialized."""
    if not chunks:
        return

    settings = get_settings()
    rows = []
    for chunk in chunks:
        meta = SlideChunkMetadata(
            document_id=document_id,
            slide_number=chunk.page_number + 1,  # 1-based for display
            course_id=course_id,
            owner_id=user_id,
            title=filename,
        )
        rows.append({
            "content": chunk.content,
            "meta_data": meta.model_dump(),
            "embedding": format_vector_literal(chunk.embedding),
        })

    db = get_supabase_client()
    db.table(settings.SLIDE_CHUNKS_TABLE).insert(rows).execute()
    logger.info(f"Inserted {len(rows)} slide chunks for document {document_id}")


def delete_document_chunks(document_id: str) -> None:
    settings = get_settings()
    db = get_supabase_client()
    db.table(settings.SLIDE_CHUNKS_TABLE).delete().eq("meta_data->>document_id", document_id).execute()
