"""
Lectures feature: long-recording transcription.

Recordings too large for a single upload are cut into fixed windows
(600s, 10s overlap), transcribed one window at a time, then stitched back
together. Text in each overlap is reconciled with a word-level alignment so
words spoken across a window edge appear once.

Lecture-hall captures are often stereo with one dead or noisy channel, so the
channel to keep is chosen by transcribing a short probe of each.
"""

import asyncio
import logging
import math
import os
import shutil
import tempfile

from studybuddy.config import get_settings
from studybuddy.core.exceptions import TranscriptionError
from studybuddy.features.lectures.ffmpeg import extract_audio_window, probe_channels, probe_duration
from studybuddy.features.lectures.schemas import (
    AudioWindow,
    TranscriptionResult,
    WhisperSegment,
    WindowTranscription,
)
from studybuddy.features.lectures.transcription import transcribe_file

logger = logging.getLogger(__name__)


def plan_windows(
    duration: float,
    chunk_length: float = 600,
    overlap: float = 10,
) -> list[AudioWindow]:
    """Fixed windows covering [0, duration); the last one is clipped."""
    step = chunk_length - overlap
    if duration <= 0 or step <= 0:
        return []

    windows = []
    for i in range(math.ceil(duration / step)):
        start = i * step
        end = min(start + chunk_length, duration)
        windows.append(AudioWindow(index=i, start=start, duration=end - start))
    return windows


# ── Channel selection ────────────────────────────────────

async def _probe_channel_score(
    path: str,
    channel: int,
    start: float,
    length: float,
    work_dir: str,
) -> float:
    probe_path = os.path.join(work_dir, f"probe_c{channel}.flac")
    await extract_audio_window(path, probe_path, start, length, channel=channel)
    response = await transcribe_file(probe_path, get_settings().CHUNK_TRANSCRIPTION_TIMEOUT)

    logprobs = [s.avg_logprob for s in response.segments if s.avg_logprob is not None]
    if not logprobs:
        return float("-inf")
    return sum(logprobs) / len(logprobs)


async def select_channel(path: str, duration: float, channels: int, work_dir: str) -> int:
    """Pick the stereo channel whose probe transcribes with higher confidence.

    Mono input and any probe failure resolve to channel 0.
    """
    if channels < 2:
        return 0

    probe_length = min(float(get_settings().CHANNEL_PROBE_SECONDS), duration)
    start = max(0.0, duration / 2 - probe_length / 2)

    # Both probes settle before returning so none outlives work_dir
    left, right = await asyncio.gather(
        _probe_channel_score(path, 0, start, probe_length, work_dir),
        _probe_channel_score(path, 1, start, probe_length, work_dir),
        return_exceptions=True,
    )
    for score in (left, right):
        if isinstance(score, Exception):
            logger.warning(f"Channel probe failed, defaulting to channel 0: {score}")
            return 0

    selected = 1 if right > left else 0
    logger.info(f"Channel probe scores: c0={left:.3f}, c1={right:.3f} -> using channel {selected}")
    return selected


# ── Overlap merge ────────────────────────────────────────

def find_longest_common_sequence(sequences: list[str]) -> str:
    """Stitch word sequences together at their best overlapping alignment.

    For each adjacent pair every relative offset is scored as
    matches / offset + offset / 10000; the first best-scoring offset with at
    least two case-insensitive word matches wins. The overlap is split at its
    midpoint: the left half comes from the left text, the rest from the right.
    """
    if not sequences:
        return ""
    if len(sequences) == 1:
        return sequences[0]

    word_sequences = [seq.split() for seq in sequences]

    left = word_sequences[0]
    total: list[str] = []

    for right in word_sequences[1:]:
        left_len = len(left)
        right_len = len(right)

        max_matching = 0.0
        max_indices = (left_len, left_len, 0, 0)

        for i in range(1, left_len + right_len + 1):
            eps = i / 10000

            left_start = max(0, left_len - i)
            left_stop = min(left_len, left_len + right_len - i)
            right_start = max(0, i - left_len)
            right_stop = min(right_len, i)

            left_words = left[left_start:left_stop]
            right_words = right[right_start:right_stop]
            if len(left_words) != len(right_words):
                continue

            matches = sum(1 for a, b in zip(left_words, right_words) if a.lower() == b.lower())
            matching = matches / i + eps

            if matches > 1 and matching > max_matching:
                max_matching = matching
                max_indices = (left_start, left_stop, right_start, right_stop)

        left_start, left_stop, right_start, right_stop = max_indices
        left_mid = (left_stop + left_start) // 2
        right_mid = (right_stop + right_start) // 2

        total.extend(left[:left_mid])
        left = right[right_mid:]

    total.extend(left)
    return " ".join(total)


def _absolute_segments(window: WindowTranscription) -> list[WhisperSegment]:
    return [
        WhisperSegment(id=s.id, start=s.start + window.start, end=s.end + window.start, text=s.text)
        for s in window.result.segments
    ]


def merge_transcripts(results: list[WindowTranscription], overlap_seconds: float) -> TranscriptionResult:
    """Merge per-window transcriptions into one absolute-time transcript.

    Segments of a non-last window ending before the next window starts are
    kept as-is. Its tail (segments running past the next window's start) is
    joined with the next window's segments starting inside the overlap and
    reconciled by find_longest_common_sequence into a single segment. The last
    window is appended whole. Ids are renumbered from 0.
    """
    if not results:
        return TranscriptionResult(transcription="", segments=[], detected_language="en")

    ordered = sorted(results, key=lambda r: r.index)
    merged: list[WhisperSegment] = []

    def emit(start: float, end: float, text: str) -> None:
        merged.append(WhisperSegment(id=len(merged), start=start, end=end, text=text.strip()))

    for i, window in enumerate(ordered):
        segments = _absolute_segments(window)

        if i == len(ordered) - 1:
            for seg in segments:
                emit(seg.start, seg.end, seg.text)
            continue

        next_window = ordered[i + 1]
        overlap_start = next_window.start
        overlap_end = overlap_start + overlap_seconds

        tail = [s for s in segments if s.end > overlap_start]
        for seg in segments:
            if seg.end <= overlap_start:
                emit(seg.start, seg.end, seg.text)

        if not tail:
            continue

        next_head = [s for s in _absolute_segments(next_window) if s.start < overlap_end]
        if next_head:
            text = find_longest_common_sequence([
                " ".join(s.text for s in tail),
                " ".join(s.text for s in next_head),
            ])
            emit(tail[0].start, next_head[-1].end, text)
        else:
            for seg in tail:
                emit(seg.start, seg.end, seg.text)

    return TranscriptionResult(
        transcription=" ".join(s.text for s in merged),
        segments=merged,
        detected_language=ordered[0].result.language or "en",
    )


# ── Driver ───────────────────────────────────────────────

async def transcribe_with_chunking(
    path: str,
    chunk_length: float | None = None,
    overlap: float | None = None,
) -> TranscriptionResult:
    """Window, transcribe sequentially, and merge a long recording.

    Window files live in a private temp directory that is removed whether or
    not transcription succeeds.
    """
    settings = get_settings()
    chunk_length = chunk_length if chunk_length is not None else settings.AUDIO_CHUNK_SECONDS
    overlap = overlap if overlap is not None else settings.AUDIO_OVERLAP_SECONDS

    if not settings.GROQ_API_KEY:
        raise TranscriptionError("GROQ_API_KEY environment variable is not set", "MISSING_API_KEY")

    work_dir = tempfile.mkdtemp(prefix="studybuddy-windows-")
    try:
        duration = await probe_duration(path)
        channels = await probe_channels(path)
        windows = plan_windows(duration, chunk_length, overlap)
        logger.info(
            f"Audio duration {duration:.2f}s, {channels} channel(s): "
            f"{len(windows)} windows ({chunk_length}s each, {overlap}s overlap)"
        )

        channel = await select_channel(path, duration, channels, work_dir) if channels >= 2 else None

        results: list[WindowTranscription] = []
        # One window at a time
        for window in windows:
            window_path = os.path.join(work_dir, f"chunk_{window.index:03d}.flac")
            await extract_audio_window(path, window_path, window.start, window.duration, channel=channel)
            logger.info(f"Transcribing window {window.index + 1}/{len(windows)}")
            response = await transcribe_file(window_path, settings.CHUNK_TRANSCRIPTION_TIMEOUT)
            results.append(WindowTranscription(index=window.index, start=window.start, result=response))

        merged = merge_transcripts(results, overlap)
        logger.info(f"Chunked transcription complete: {len(merged.segments)} segments")
        return merged
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)
