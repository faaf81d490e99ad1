"""Centralized logging configuration for the decoder and its command line."""
import logging
import sys
from typing import Optional

import structlog

LOG_FORMATS = ("json", "console")


def configure_logging(level: str = "WARNING", fmt: str = "console", stream=None) -> None:
    """
    Install structlog processors rendering to ``stream`` (stderr by default).

    Args:
        level: Minimum level name, e.g. 'INFO'
        fmt: 'json' for one JSON object per line, 'console' for readable output
        stream: File object receiving rendered events
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"log format must be one of {LOG_FORMATS}, got {fmt!r}")
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level {level!r}")

    renderer = structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def configure_from_settings(settings, stream: Optional[object] = None) -> None:
    configure_logging(settings.log_level, settings.log_format, stream=stream)


__all__ = ["configure_from_settings", "configure_logging"]
