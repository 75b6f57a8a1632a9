"""
Study Buddy worker entry point.

Configures logging once for the process and keeps the maintenance scheduler
running. Ingestion pipelines are not started here; the web layer hands them to
its BackgroundTasks.
"""

import asyncio
import logging

from studybuddy.background.scheduler import init_scheduler, shutdown_scheduler
from studybuddy.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def run() -> None:
    configure_logging()
    init_scheduler()
    logger.info("🚀 Study Buddy worker started")
    try:
        await asyncio.Event().wait()
    finally:
        shutdown_scheduler()
        logger.info("👋 Worker stopped")


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
