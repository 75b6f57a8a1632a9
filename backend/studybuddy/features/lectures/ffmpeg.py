"""
Lectures feature: ffmpeg / ffprobe wrappers.

All invocations go through `_run` (asyncio subprocess, argv list, no shell).
Failures raise FFmpegError with the tail of stderr.
"""

import asyncio
import logging
import weakref

from studybuddy.core.exceptions import FFmpegError

logger = logging.getLogger(__name__)

STDERR_TAIL = 500

# Concurrent HLS downloads per event loop
MAX_CONCURRENT_DOWNLOADS = 4

_download_slots: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


def _get_download_slots() -> asyncio.Semaphore:
    loop = asyncio.get_running_loop()
    slots = _download_slots.get(loop)
    if slots is None:
        slots = _download_slots[loop] = asyncio.Semaphore(MAX_CONCURRENT_DOWNLOADS)
    return slots


async def _run(args: list[str]) -> tuple[int, str, str]:
    """Run a binary and return (returncode, stdout, stderr)."""
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise FFmpegError(f"{args[0]} not found: {e}", "FFMPEG_NOT_FOUND") from e

    stdout, stderr = await process.communicate()
    return (
        process.returncode,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )


def _failure(tool: str, code: int, stderr: str) -> FFmpegError:
    return FFmpegError(f"{tool} failed (code {code}): {stderr[-STDERR_TAIL:]}", "FFMPEG_FAILED")


async def probe_duration(path: str) -> float:
    """Container duration in seconds."""
    code, out, err = await _run([
        "ffprobe", "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        path,
    ])
    if code != 0:
        raise _failure("ffprobe", code, err)
    try:
        return float(out.strip())
    except ValueError as e:
        raise FFmpegError(f"Could not parse duration from ffprobe output: {out!r}", "PROBE_FAILED") from e


async def probe_channels(path: str) -> int:
    """Channel count of the first audio stream."""
    code, out, err = await _run([
        "ffprobe", "-v", "error",
        "-select_streams", "a:0",
        "-show_entries", "stream=channels",
        "-of", "default=noprint_wrappers=1:nokey=1",
        path,
    ])
    if code != 0:
        raise _failure("ffprobe", code, err)
    try:
        return int(out.strip().splitlines()[0])
    except (ValueError, IndexError) as e:
        raise FFmpegError(f"Could not parse channel count from ffprobe output: {out!r}", "PROBE_FAILED") from e


async def extract_audio_window(
    source: str,
    output: str,
    start: float,
    duration: float,
    channel: int | None = None,
) -> str:
    """Cut [start, start+duration) into mono 16 kHz FLAC.

    With `channel` set, only that input channel is kept; otherwise channels
    are downmixed.
    """
    args = ["ffmpeg", "-y", "-ss", str(start), "-i", source, "-t", str(duration)]
    if channel is not None:
        args += ["-af", f"pan=mono|c0=c{channel}"]
    args += ["-ac", "1", "-ar", "16000", "-c:a", "flac", output]

    code, _, err = await _run(args)
    if code != 0:
        raise _failure("ffmpeg", code, err)
    return output


async def download_and_extract_audio(stream_url: str, output: str) -> float:
    """Pull the first audio track of an HLS stream into a 16 kHz mono MP3.

    Returns the duration of the written file in seconds.
    """
    async with _get_download_slots():
        code, _, err = await _run([
            "ffmpeg",
            "-analyzeduration", "0",
            "-probesize", "32",
            "-i", stream_url,
            "-map", "0:a:0",
            "-ar", "16000",
            "-ac", "1",
            "-c:a", "libmp3lame",
            "-b:a", "32k",
            "-y",
            output,
        ])
    if code != 0:
        raise _failure("ffmpeg", code, err)

    duration = await probe_duration(output)
    logger.info(f"Downloaded {duration:.0f}s of audio to {output}")
    return duration
