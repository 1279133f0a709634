"""Structured logging for metacog.

structlog renders through the standard library so that uvicorn, httpx
and our own loggers share one handler. JSON in production, a console
renderer in debug mode. The stdio transport points the handler at
stderr, since stdout carries protocol messages there.
"""

import logging
import sys
from typing import Any, TextIO

import structlog

# Request logging is done by RequestTracingMiddleware.
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _renderer(json_format: bool, interactive: bool) -> list[Any]:
    if json_format:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=interactive,
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    add_timestamp: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        json_format: Emit one JSON object per line instead of console output.
        level: Log level name.
        add_timestamp: Prefix entries with a UTC ISO timestamp.
        stream: Where log lines go. Defaults to stdout.
    """
    numeric_level = logging.getLevelName(level.upper())
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=numeric_level,
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors.extend(_renderer(json_format, interactive=stream is None))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind values into every log entry for the current request or task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
