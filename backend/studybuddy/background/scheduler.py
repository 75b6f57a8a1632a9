"""
Background scheduler for periodic maintenance.

Uses APScheduler to sweep orphaned lecture audio out of the temp area.
Started by the worker entry point (studybuddy.worker).
"""

import logging
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler

from studybuddy.background.temp_cleanup import cleanup_stale_audio
from studybuddy.config import get_settings

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "cleanup_stale_audio_task"

# Singleton scheduler instance
scheduler = AsyncIOScheduler(timezone=timezone.utc)


def register_jobs(target: BaseScheduler | None = None) -> None:
    """Add (or replace) the maintenance jobs on `target`, the singleton by default."""
    target = target or scheduler
    hours = get_settings().TEMP_CLEANUP_INTERVAL_HOURS

    target.add_job(
        cleanup_stale_audio,
        "interval",
        hours=hours,
        id=CLEANUP_JOB_ID,
        replace_existing=True,
    )
    logger.info(f"🔔 Scheduled {CLEANUP_JOB_ID} every {hours}h")


def init_scheduler() -> None:
    """Register jobs and start the scheduler. Needs a running event loop."""
    register_jobs()
    scheduler.start()

    for job in scheduler.get_jobs():
        logger.info(f"📅 {job.id}: next run at {job.next_run_time}")


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("📅 Scheduler shut down.")
