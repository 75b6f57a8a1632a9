"""
Knowledge feature: Retrieval over slide and lecture chunks.

Search hits are re-ordered structurally (slides by document/slide number,
lectures by lecture/start time) and rendered as numbered citations, so the
similarity score only decides *which* chunks come back, never their order.
"""

import asyncio
import logging

from studybuddy.config import get_settings
from studybuddy.core.api_keys import get_user_api_key
from studybuddy.core.database import get_supabase_client
from studybuddy.features.knowledge.embedding import embed_text
from studybuddy.features.knowledge.schemas import (
    LectureHit,
    RAGSource,
    SearchHit,
    SearchResult,
    SlideHit,
)
from studybuddy.features.knowledge.vector_utils import format_vector_literal

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200


def format_timestamp(seconds: float) -> str:
    """Format seconds as MM:SS, or H:MM:SS once past the first hour."""
    total = int(seconds)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def _format_number(value: float) -> str:
    # 120.0 -> "120"
    return str(int(value)) if float(value).is_integer() else str(value)


def _order_hits(hits: list[SearchHit]) -> list[SearchHit]:
    slides = sorted(
        (h for h in hits if isinstance(h, SlideHit)),
        key=lambda h: (h.document_id, h.slide_number),
    )
    lectures = sorted(
        (h for h in hits if isinstance(h, LectureHit)),
        key=lambda h: (h.lecture_id, h.start_seconds),
    )
    return [*slides, *lectures]


def format_retrieval_context(hits: list[SearchHit]) -> SearchResult:
    """Turn raw search hits into a numbered context string plus citation sources.

    Args:
        hits: Slide and lecture hits in any order.

    Returns:
        SearchResult whose `context` lines are `[n] (hint) content` joined by a
        blank line, and whose `sources[i]` describes line i+1.
    """
    if not hits:
        return SearchResult()

    lines: list[str] = []
    sources: list[RAGSource] = []

    for chunk_number, hit in enumerate(_order_hits(hits), start=1):
        if isinstance(hit, SlideHit):
            hint = f"Slide {hit.slide_number}"
            sources.append(RAGSource(
                source_id=f"slide-{hit.document_id}-{hit.slide_number}",
                type="slide",
                chunk_number=chunk_number,
                content_preview=hit.content[:PREVIEW_LENGTH],
                document_id=hit.document_id,
                slide_number=hit.slide_number,
                course_id=hit.course_id,
                title=hit.title,
            ))
        else:
            hint = f"Lecture @{format_timestamp(hit.start_seconds)}"
            sources.append(RAGSource(
                source_id=f"lecture-{hit.lecture_id}-{_format_number(hit.start_seconds)}",
                type="lecture",
                chunk_number=chunk_number,
                content_preview=hit.content[:PREVIEW_LENGTH],
                lecture_id=hit.lecture_id,
                start_seconds=hit.start_seconds,
                end_seconds=hit.end_seconds,
                course_id=hit.course_id,
                title=hit.title,
            ))
        lines.append(f"[{chunk_number}] ({hint}) {hit.content}")

    return SearchResult(context="\n\n".join(lines), sources=sources)


# ── Similarity search (pgvector RPCs) ────────────────────

def search_slides(
    embedding: list[float],
    user_id: str,
    course_id: str,
    document_id: str | None = None,
    top_k: int | None = None,
) -> list[SlideHit]:
    """Slide chunks are private: scoped by owner and course."""
    settings = get_settings()
    db = get_supabase_client()
    result = db.rpc(
        settings.SLIDE_SEARCH_RPC,
        {
            "query_embedding": format_vector_literal(embedding),
            "match_owner_id": user_id,
            "match_course_id": course_id,
            "match_document_id": document_id,
            "match_count": top_k or settings.SEARCH_TOP_K,
        },
    ).execute()
    return [SlideHit.model_validate(row) for row in (result.data or [])]


def search_lectures(
    embedding: list[float],
    course_id: str,
    lecture_id: str | None = None,
    top_k: int | None = None,
) -> list[LectureHit]:
    """Lecture chunks are shared by everyone enrolled in the course."""
    settings = get_settings()
    db = get_supabase_client()
    result = db.rpc(
        settings.LECTURE_SEARCH_RPC,
        {
            "query_embedding": format_vector_literal(embedding),
            "match_course_id": course_id,
            "match_lecture_id": lecture_id,
            "match_count": top_k or settings.SEARCH_TOP_K,
        },
    ).execute()
    return [LectureHit.model_validate(row) for row in (result.data or [])]


async def search_knowledge(
    query: str,
    user_id: str,
    course_id: str,
    document_id: str | None = None,
    lecture_id: str | None = None,
    api_key: str | None = None,
) -> SearchResult:
    """Embed the query, search slides and lectures concurrently, format for the LLM.

    When no key is passed the user's key is resolved (BYOK, then shared).
    """
    if api_key is None:
        api_key = get_user_api_key(user_id)
    query_embedding = await embed_text(query, api_key)

    slide_hits, lecture_hits = await asyncio.gather(
        asyncio.to_thread(search_slides, query_embedding, user_id, course_id, document_id),
        asyncio.to_thread(search_lectures, query_embedding, course_id, lecture_id),
    )
    logger.info(
        f"Knowledge search for course {course_id}: "
        f"{len(slide_hits)} slide hits, {len(lecture_hits)} lecture hits"
    )
    return format_retrieval_context([*slide_hits, *lecture_hits])
