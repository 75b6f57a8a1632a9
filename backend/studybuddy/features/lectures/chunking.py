"""
Lectures feature: chunking strategy selector.

  API key present → semantic (LLM topic boundaries), a few attempts
  no key / all attempts failed → time-based (180s parts)
"""

import logging

from studybuddy.config import get_settings
from studybuddy.features.lectures.schemas import TimestampedChunk, WhisperSegment
from studybuddy.features.lectures.semantic_chunking import chunk_by_semantic
from studybuddy.features.lectures.time_chunking import chunk_by_time

logger = logging.getLogger(__name__)


async def chunk_transcript(
    segments: list[WhisperSegment],
    api_key: str | None = None,
) -> list[TimestampedChunk]:
    """Chunk a normalized transcript with the best available strategy."""
    if not segments:
        return []

    if not api_key:
        return chunk_by_time(segments)

    attempts = get_settings().SEMANTIC_CHUNK_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            return await chunk_by_semantic(segments, api_key)
        except Exception as e:
            if attempt < attempts:
                logger.warning(f"Semantic chunking attempt {attempt} failed, retrying: {e}")
            else:
                logger.warning(
                    f"Semantic chunking failed after {attempts} attempts, "
                    f"falling back to time-based: {e}"
                )

    return chunk_by_time(segments)
