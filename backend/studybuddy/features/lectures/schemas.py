"""
Lectures feature: Pydantic schemas for transcription and chunking.
"""

from enum import Enum

from pydantic import BaseModel, Field


class LectureStatus(str, Enum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    TRANSCRIBING = "transcribing"
    CHUNKING = "chunking"
    COMPLETED = "completed"
    FAILED = "failed"


class WhisperSegment(BaseModel):
    id: int
    start: float
    end: float
    text: str


class TranscriptionResult(BaseModel):
    transcription: str
    segments: list[WhisperSegment] = Field(default_factory=list)
    detected_language: str = "en"


class GroqSegment(BaseModel):
    """Segment of a verbose_json transcription response."""
    id: int
    start: float
    end: float
    text: str
    avg_logprob: float | None = None


class GroqTranscription(BaseModel):
    """Subset of the Groq/OpenAI verbose_json response we rely on."""
    text: str
    segments: list[GroqSegment] = Field(default_factory=list)
    language: str | None = None


class TimestampedChunk(BaseModel):
    """A span of transcript ready for embedding."""
    title: str
    text: str
    start_seconds: float
    end_seconds: float
    chunk_index: int
    segment_ids: list[int] = Field(default_factory=list)


class TopicBoundary(BaseModel):
    title: str = Field(..., description="Brief topic title (3-6 words)")
    start: float = Field(..., description="Start time in seconds of the first segment of this topic")
    end: float = Field(..., description="End time in seconds of the last segment of this topic")


class SemanticChunks(BaseModel):
    """Structured output contract for the topic boundary model."""
    chunks: list[TopicBoundary]


class AudioWindow(BaseModel):
    """One fixed-length slice of a long recording."""
    index: int
    start: float
    duration: float


class WindowTranscription(BaseModel):
    """Transcription of one window; segment times are local to the window."""
    index: int
    start: float  # window offset in the full recording, seconds
    result: GroqTranscription


class LectureChunkMetadata(BaseModel):
    lecture_id: str
    course_id: str
    start_seconds: float
    end_seconds: float
    chunk_index: int
    title: str


class LectureStatusUpdate(BaseModel):
    """Partial update for a lectures row. Unset fields are not written."""
    status: LectureStatus | None = None
    duration_seconds: int | None = None
    chunk_count: int | None = None
    error_message: str | None = None


class UrlValidationResult(BaseModel):
    valid: bool
    error: str | None = None
