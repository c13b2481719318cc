"""Structured logging configuration.

structlog builds and renders each event; the standard library only routes the
rendered line to stdout, which uvicorn (started with `log_config=None`) and
SQLAlchemy records share.
"""
import logging
import sys
from typing import Any

import structlog

SHARED_PROCESSORS = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
)


def _resolve_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def _renderer(log_format: str):
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structured logging.

    Safe to call more than once: the root logger ends up with exactly one
    stdout handler.

    Args:
        log_level: Logging level name, case-insensitive; unknown names mean INFO
        log_format: "json" for deployments, "console" for local development
    """
    level = _resolve_level(log_level)
    logging.basicConfig(level=level, stream=sys.stdout, format="%(message)s", force=True)

    structlog.configure(
        processors=[*SHARED_PROCESSORS, _renderer(log_format)],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
