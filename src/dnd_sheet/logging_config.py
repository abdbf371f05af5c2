"""Structured logging configuration for dnd_sheet.

Example:
    >>> from dnd_sheet.logging_config import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("character_saved", character_id="abc")
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor

from dnd_sheet.config import get_log_level


def configure_logging(*, level: str | None = None, json_format: bool = False) -> None:
    """Configure structlog for console or JSON output.

    Args:
        level: Logging level name; defaults to ``DND_SHEET_LOG_LEVEL``.
        json_format: Emit one JSON object per event instead of console lines.
    """
    level_name = (level or get_log_level()).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structlog logger, typically named after the module."""
    return structlog.get_logger(name)


__all__ = ["configure_logging", "get_logger"]
