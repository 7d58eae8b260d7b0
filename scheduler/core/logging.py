"""structlog setup shared by the API server and background jobs."""

from __future__ import annotations

import logging
import sys

import structlog

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "text": structlog.dev.ConsoleRenderer,
}


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Route structlog (and stdlib loggers such as uvicorn's) to stdout."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    renderer = _RENDERERS.get(fmt, structlog.processors.JSONRenderer)()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
    )
    logging.basicConfig(level=numeric_level, stream=sys.stdout, format="%(message)s")


def mask_identifier(value: str) -> str:
    """Shorten a username or email for log output."""
    return value[:5] + "***"
