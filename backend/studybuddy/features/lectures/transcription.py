"""
Lectures feature: Groq Whisper speech-to-text client.

Small files are uploaded in one call; anything over MAX_DIRECT_UPLOAD_BYTES
goes through audio_chunking (windowed transcription + overlap merge).
"""

import logging
import os

import httpx
from pydantic import ValidationError

from studybuddy.config import get_settings
from studybuddy.core.exceptions import TranscriptionError
from studybuddy.features.lectures.schemas import GroqTranscription, TranscriptionResult, WhisperSegment

logger = logging.getLogger(__name__)


def _build_client(timeout: float) -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(base_url=settings.GROQ_BASE_URL.rstrip("/"), timeout=timeout)


async def transcribe_file(path: str, timeout: float | None = None) -> GroqTranscription:
    """Send one audio file to the transcription endpoint (verbose_json).

    Raises:
        TranscriptionError: code is one of MISSING_API_KEY, FILE_READ_FAILED,
            TRANSCRIPTION_FAILED, CONNECTION_FAILED, INVALID_RESPONSE.
    """
    settings = get_settings()
    if not settings.GROQ_API_KEY:
        raise TranscriptionError("GROQ_API_KEY environment variable is not set", "MISSING_API_KEY")

    try:
        with open(path, "rb") as f:
            audio = f.read()
    except OSError as e:
        raise TranscriptionError(f"Failed to read audio file: {e}", "FILE_READ_FAILED") from e

    timeout = timeout if timeout is not None else settings.DIRECT_TRANSCRIPTION_TIMEOUT

    try:
        async with _build_client(float(timeout)) as client:
            response = await client.post(
                "/audio/transcriptions",
                headers={"Authorization": f"Bearer {settings.GROQ_API_KEY}"},
                files={"file": (os.path.basename(path), audio)},
                data={
                    "model": settings.TRANSCRIPTION_MODEL,
                    "response_format": "verbose_json",
                    "language": settings.TRANSCRIPTION_LANGUAGE,
                    "temperature": "0",
                },
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"Transcription API error {e.response.status_code}: {e.response.text[:500]}")
        raise TranscriptionError(
            f"Groq transcription failed: {e.response.status_code} {e.response.reason_phrase}",
            "TRANSCRIPTION_FAILED",
        ) from e
    except httpx.HTTPError as e:
        raise TranscriptionError(f"Failed to connect to Groq API: {e}", "CONNECTION_FAILED") from e

    try:
        return GroqTranscription.model_validate(response.json())
    except (ValidationError, ValueError) as e:
        raise TranscriptionError(f"Unexpected transcription response: {e}", "INVALID_RESPONSE") from e


def to_transcription_result(response: GroqTranscription) -> TranscriptionResult:
    return TranscriptionResult(
        transcription=response.text,
        segments=[
            WhisperSegment(id=s.id, start=s.start, end=s.end, text=s.text.strip())
            for s in response.segments
        ],
        detected_language=response.language or "en",
    )


async def transcribe_audio(path: str) -> TranscriptionResult:
    """Transcribe a local audio file, chunking it when it is too large for one upload."""
    from studybuddy.features.lectures.audio_chunking import transcribe_with_chunking

    settings = get_settings()
    try:
        size = os.path.getsize(path)
    except OSError as e:
        raise TranscriptionError(f"Failed to read audio file: {e}", "FILE_READ_FAILED") from e

    size_mb = size / 1024 / 1024
    if size > settings.MAX_DIRECT_UPLOAD_BYTES:
        logger.info(f"{os.path.basename(path)} is {size_mb:.2f}MB - using chunked transcription")
        return await transcribe_with_chunking(path)

    logger.info(f"Uploading {os.path.basename(path)} ({size_mb:.2f}MB) for transcription")
    response = await transcribe_file(path, settings.DIRECT_TRANSCRIPTION_TIMEOUT)
    return to_transcription_result(response)
