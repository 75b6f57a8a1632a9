"""
Logging configuration for the ingestion workers.

Library modules only call `logging.getLogger(__name__)`; the process entry point
(studybuddy.worker) calls configure_logging() once.
"""

import logging
import logging.config

from studybuddy.config import get_settings


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger."""
    settings = get_settings()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {
                "level": (level or settings.LOG_LEVEL).upper(),
                "handlers": ["default"],
            },
            "loggers": {
                # Request-level chatter from the HTTP clients
                "httpx": {"level": "WARNING"},
                "httpcore": {"level": "WARNING"},
            },
        }
    )
