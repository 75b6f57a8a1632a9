"""
Documents feature: Pydantic schemas for the slide ingestion pipeline.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PageUnit(BaseModel):
    """One page of a source PDF as a standalone single-page PDF."""
    model_config = ConfigDict(frozen=True)

    page_number: int = Field(..., ge=0)  # 0-based
    data: bytes


class PageResult(BaseModel):
    """Outcome of extracting one page. Build with `ok()` / `failed()`."""

    page_number: int = Field(..., ge=0)
    content: str | None = None
    success: bool
    error: str | None = None

    @model_validator(mode="after")
    def _failed_pages_have_no_content(self):
        if not self.success and self.content is not None:
            raise ValueError("Failed page results cannot carry content")
        return self

    @classmethod
    def ok(cls, page_number: int, content: str) -> "PageResult":
        return cls(page_number=page_number, content=content, success=True)

    @classmethod
    def failed(cls, page_number: int, error: str) -> "PageResult":
        return cls(page_number=page_number, content=None, success=False, error=error)


class UniquePage(BaseModel):
    """A successfully extracted page that survived text deduplication."""
    page_number: int
    content: str


class PageDeduplicationResult(BaseModel):
    unique: list[UniquePage] = Field(default_factory=list)
    duplicate_indices: list[int] = Field(default_factory=list)  # page numbers


class EmbeddingDeduplicationResult(BaseModel):
    unique_indices: list[int] = Field(default_factory=list)  # positions in the input list
    duplicate_indices: list[int] = Field(default_factory=list)


class ChunkData(BaseModel):
    """A page ready for insertion: text, vector and its 0-based source page."""
    page_number: int
    content: str
    embedding: list[float]


class SlideChunkMetadata(BaseModel):
    document_id: str
    slide_number: int  # 1-based
    course_id: str
    owner_id: str
    title: str


class DocumentStatusUpdate(BaseModel):
    """Partial update for a documents row. Unset fields are not written."""
    status: DocumentStatus | None = None
    page_count: int | None = None
    unique_page_count: int | None = None
    failed_pages: list[int] | None = None
    processed_file_path: str | None = None
    processed_at: datetime | None = None
    error_message: str | None = None
