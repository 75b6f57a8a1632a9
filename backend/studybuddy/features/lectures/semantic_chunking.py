"""
Lectures feature: LLM topic-boundary chunking.

The model sees the transcript as `[start] text` lines and answers with topic
spans as timestamps. Timestamps are then snapped to real segment starts, so
the model never has to reproduce transcript text verbatim.
"""

import logging

from studybuddy.config import get_settings
from studybuddy.core.llm_provider import create_llm
from studybuddy.features.lectures.schemas import (
    SemanticChunks,
    TimestampedChunk,
    TopicBoundary,
    WhisperSegment,
)
from studybuddy.features.lectures.time_chunking import build_chunk

logger = logging.getLogger(__name__)

CHUNKING_PROMPT = """You are analyzing a lecture transcript to identify topic boundaries.

Each line of the transcript starts with the segment start time in seconds, in brackets.
Split the lecture into logical chunks where each chunk covers ONE topic or concept.
Return the chunks in order with:
- title: A brief 3-6 word title for the topic
- start: The start time (seconds) of the first line of the topic, copied from the transcript
- end: The start time (seconds) of the last line of the topic, copied from the transcript

Important:
- Together the chunks must cover the whole transcript, from the first line to the last
- Each chunk should be a coherent topic (not arbitrary time splits)
- Typical chunk length: 1-5 minutes of content
- Look for topic transitions: "Now let's talk about...", "Moving on to...", etc.
- If the transcript is short, it's okay to return just one chunk

Transcript:
"""


def format_transcript_lines(segments: list[WhisperSegment]) -> str:
    return "\n".join(f"[{s.start:.1f}] {s.text}" for s in segments if s.text.strip())


async def detect_topic_boundaries(
    segments: list[WhisperSegment],
    api_key: str,
) -> list[TopicBoundary]:
    """Ask the chunking model for topic spans over the timestamped transcript."""
    settings = get_settings()
    llm = create_llm(api_key, settings.CHUNKING_MODEL)
    structured = llm.with_structured_output(SemanticChunks)

    result = await structured.ainvoke(CHUNKING_PROMPT + format_transcript_lines(segments))
    if not isinstance(result, SemanticChunks):
        result = SemanticChunks.model_validate(result)
    return result.chunks


def find_closest_segment_index(segments: list[WhisperSegment], timestamp: float) -> int:
    """Index of the segment whose start is nearest `timestamp` (first wins on ties)."""
    best_index = 0
    best_distance = float("inf")
    for i, segment in enumerate(segments):
        distance = abs(segment.start - timestamp)
        if distance < best_distance:
            best_index = i
            best_distance = distance
    return best_index


def resolve_chunks_from_timestamps(
    boundaries: list[TopicBoundary],
    segments: list[WhisperSegment],
) -> list[TimestampedChunk]:
    """Snap model boundaries to segments and build chunks.

    Each chunk ends one segment before the next chunk starts; the last chunk
    runs to the final segment and the first always starts at segment 0.
    Boundaries that snap onto an already-claimed segment are dropped.
    """
    if not boundaries or not segments:
        return []

    ordered = sorted(boundaries, key=lambda b: b.start)
    start_indices = [find_closest_segment_index(segments, b.start) for b in ordered]
    start_indices[0] = 0

    chunks: list[TimestampedChunk] = []
    for i, boundary in enumerate(ordered):
        start_idx = start_indices[i]
        end_idx = start_indices[i + 1] - 1 if i + 1 < len(ordered) else len(segments) - 1
        if end_idx < start_idx:
            logger.debug(f"Dropping topic '{boundary.title}': no segments of its own")
            continue
        chunks.append(build_chunk(segments[start_idx:end_idx + 1], len(chunks), boundary.title))

    return chunks


async def chunk_by_semantic(segments: list[WhisperSegment], api_key: str) -> list[TimestampedChunk]:
    """Semantic chunking end to end. Raises on any model or parsing failure."""
    if not segments:
        return []

    boundaries = await detect_topic_boundaries(segments, api_key)
    chunks = resolve_chunks_from_timestamps(boundaries, segments)
    if not chunks:
        raise ValueError("Topic detection returned no usable chunks")
    return chunks
