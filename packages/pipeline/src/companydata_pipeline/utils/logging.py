"""
utils/logging.py — structlog configuration for the importer and API server.

Sets up structured logging with JSON or human-readable console output
controlled by settings.log_format. Call configure_logging() once at process
startup (the CLI does this before running any command).

Usage:
    from companydata_pipeline.utils.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger(__name__, pipeline="companies_house")
    log.info("batch_committed", records=5000)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from companydata_shared.config import settings

# Chatty third-party loggers held at WARNING unless DEBUG is requested
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog (and stdlib logging) for this process. Idempotent.

    Log records go to stderr so command output on stdout stays parseable.

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", …).
        log_format: Override settings.log_format ("json" | "console").
    """
    level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.typing.FilteringBoundLogger:
    """
    Return a structlog logger with optional initial context values.

    Args:
        name:             Logger name (conventionally the module __name__).
        **initial_values: Key-value pairs merged into every log record.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger  # type: ignore[return-value]
