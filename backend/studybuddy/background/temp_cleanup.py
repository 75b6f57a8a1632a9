"""
Background cleanup job: remove orphaned lecture audio from the temp area.

The lecture pipeline deletes its temp file on success; a crash or a failed
run leaves it behind. cleanup_stale_audio() runs on an interval from the
APScheduler in background/scheduler.py and deletes any temp audio older than
TEMP_AUDIO_MAX_AGE_HOURS, judged by file mtime.
"""

import logging
import os
import time

from studybuddy.config import get_settings
from studybuddy.features.lectures.temp_files import TEMP_AUDIO_SUFFIX, get_temp_base_path

logger = logging.getLogger(__name__)


def cleanup_stale_audio(now: float | None = None) -> dict:
    """
    Delete temp audio files older than the configured max age.

    Files without the temp audio suffix are left alone.

    Returns:
        dict: { "deleted": int, "skipped": int, "errors": int }
    """
    stats = {"deleted": 0, "skipped": 0, "errors": 0}
    now = time.time() if now is None else now
    max_age_seconds = get_settings().TEMP_AUDIO_MAX_AGE_HOURS * 60 * 60
    base = get_temp_base_path()

    try:
        entries = list(os.scandir(base))
    except FileNotFoundError:
        logger.debug(f"Temp audio dir {base} does not exist, nothing to clean")
        return stats
    except OSError as e:
        logger.error(f"cleanup_stale_audio could not list {base}: {e}")
        stats["errors"] += 1
        return stats

    for entry in entries:
        if not entry.is_file() or not entry.name.endswith(TEMP_AUDIO_SUFFIX):
            stats["skipped"] += 1
            continue

        try:
            age_seconds = now - entry.stat().st_mtime
            if age_seconds > max_age_seconds:
                os.remove(entry.path)
                logger.info(f"🗑️  Deleted stale temp audio: {entry.name} (age: {int(age_seconds) // 3600}h)")
                stats["deleted"] += 1
            else:
                stats["skipped"] += 1
        except OSError as e:
            logger.warning(f"Failed to delete temp audio {entry.path}: {e}")
            stats["errors"] += 1

    logger.info(
        f"✅ Temp audio cleanup finished: "
        f"deleted={stats['deleted']}, skipped={stats['skipped']}, errors={stats['errors']}"
    )
    return stats
