"""
Custom exception classes for unified error handling.
"""


class AppBaseError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


# ── Validation / structural failures ─────────────────────

class InvalidDocumentError(AppBaseError):
    """Raised when uploaded bytes are not a well-formed PDF."""
    def __init__(self, original_error: str):
        super().__init__(
            message=f"Invalid PDF document: {original_error}",
            detail="The file could not be parsed as a PDF.",
        )


class VectorLengthMismatchError(AppBaseError):
    """Raised when two vectors of different lengths are compared."""
    def __init__(self, left: int, right: int):
        super().__init__(message=f"Vector length mismatch: {left} vs {right}")


class ChunkMismatchError(AppBaseError):
    """Raised when pages and embeddings cannot be zipped 1:1."""
    def __init__(self, pages: int, embeddings: int):
        super().__init__(message=f"Mismatch: {pages} pages but {embeddings} embeddings")


class InvalidEmbeddingError(AppBaseError):
    """Raised when an embedding cannot be safely rendered as a vector literal."""


# ── External service failures ────────────────────────────

class ApiKeyNotFoundError(AppBaseError):
    """Raised when neither a BYOK key nor the shared key is available."""
    def __init__(self):
        super().__init__(
            message="No API key available: user has no BYOK key and OPENROUTER_API_KEY is not set",
            detail="Connect an OpenRouter account or configure the shared key.",
        )


class ExtractionError(AppBaseError):
    """Raised when the extraction model returns an unusable reply."""


class EmbeddingError(AppBaseError):
    """Raised when the embedding endpoint fails or returns malformed data."""


class TranscriptionError(AppBaseError):
    """Raised when speech-to-text fails."""
    def __init__(self, message: str, code: str | None = None):
        super().__init__(message=message, detail=code)
        self.code = code


class FFmpegError(AppBaseError):
    """Raised when an ffmpeg/ffprobe invocation fails."""
    def __init__(self, message: str, code: str):
        super().__init__(message=message, detail=code)
        self.code = code


class InvalidStreamUrlError(AppBaseError):
    """Raised when a lecture stream URL fails SSRF validation."""
