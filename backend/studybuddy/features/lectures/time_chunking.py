"""
Lectures feature: fixed-duration transcript chunking.
This is the fallback strategy when semantic chunking fails, so it must never raise.
"""

from studybuddy.config import get_settings
from studybuddy.features.lectures.schemas import TimestampedChunk, WhisperSegment


def build_chunk(segments: list[WhisperSegment], index: int, title: str) -> TimestampedChunk:
    """Create a chunk spanning `segments`; blank (garbage) segment texts are skipped."""
    return TimestampedChunk(
        title=title,
        text=" ".join(s.text for s in segments if s.text.strip()),
        start_seconds=segments[0].start,
        end_seconds=segments[-1].end,
        chunk_index=index,
        segment_ids=[s.id for s in segments],
    )


def chunk_by_time(
    segments: list[WhisperSegment],
    target_duration: float | None = None,
) -> list[TimestampedChunk]:
    """Group segments into chunks of roughly `target_duration` seconds (default 180).

    A chunk closes once the incoming segment would push it past the target;
    every chunk holds at least one segment.
    """
    if not segments:
        return []
    if target_duration is None:
        target_duration = get_settings().TIME_CHUNK_SECONDS

    chunks: list[TimestampedChunk] = []
    current: list[WhisperSegment] = []
    chunk_start = segments[0].start

    for segment in segments:
        if segment.end - chunk_start > target_duration and current:
            chunks.append(build_chunk(current, len(chunks), f"Part {len(chunks) + 1}"))
            current = []
            chunk_start = segment.start
        current.append(segment)

    if current:
        chunks.append(build_chunk(current, len(chunks), f"Part {len(chunks) + 1}"))

    return chunks
