"""
Knowledge feature: Pydantic schemas for embeddings and retrieval.
"""

from typing import Literal

from pydantic import BaseModel, Field


# ── Embedding endpoint contract ──────────────────────────

class EmbeddingItem(BaseModel):
    index: int
    embedding: list[float]


class EmbeddingResponse(BaseModel):
    """Subset of the OpenAI-compatible /embeddings response we rely on."""
    data: list[EmbeddingItem]


# ── Search hits ──────────────────────────────────────────

class SlideHit(BaseModel):
    """A slide-chunk row returned by the similarity RPC."""
    type: Literal["slide"] = "slide"
    content: str
    document_id: str
    slide_number: int
    course_id: str | None = None
    similarity: float = 0.0
    title: str | None = None


class LectureHit(BaseModel):
    """A lecture-chunk row returned by the similarity RPC."""
    type: Literal["lecture"] = "lecture"
    content: str
    lecture_id: str
    start_seconds: float
    end_seconds: float | None = None
    course_id: str | None = None
    similarity: float = 0.0
    title: str | None = None


SearchHit = SlideHit | LectureHit


# ── Formatted retrieval output ───────────────────────────

class RAGSource(BaseModel):
    """Citation record parallel to one numbered context line."""
    source_id: str
    type: Literal["slide", "lecture"]
    chunk_number: int = Field(..., ge=1)
    content_preview: str
    document_id: str | None = None
    slide_number: int | None = None
    lecture_id: str | None = None
    start_seconds: float | None = None
    end_seconds: float | None = None
    course_id: str | None = None
    title: str | None = None


class SearchResult(BaseModel):
    context: str = ""
    sources: list[RAGSource] = Field(default_factory=list)
