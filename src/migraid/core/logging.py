"""
Migraid Logging - structured logging for the migration runner.

Manifesto:
    An operator must be able to tell from the output alone which
    migration ran, which one failed and why.  Every log call is a
    structured event with a dotted name and key/value fields:

    - **Console:** colored key/value lines for a terminal
    - **JSON:** ECS-compatible fields for log aggregation

Usage Flow:
    ::

        configure_logging(level="INFO", json_format=False)
        logger = get_logger(__name__)
        logger.info("migration.applied", migration="20240101_000000.init.py")

        with LogContext(migration="20240101_000000.init.py"):
            logger.info("migration.started")   # includes migration=...

Guardrails:
    - Loggers are resolved lazily, so output follows the current
      ``sys.stdout`` even after it is swapped (test runners, CLI runners)
    - Service name stored globally (set once at startup)
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "migraid"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names Elasticsearch/ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")

    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")

    if "logger_name" in event_dict:
        event_dict["log.logger"] = event_dict.pop("logger_name")

    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "migraid",
    add_timestamp: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
        stream: Fixed output stream; ``None`` writes to the current ``sys.stdout``
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None and sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )

    # pymongo logs through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=numeric_level,
    )
    logging.getLogger("pymongo").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)

    The name travels in the event as ``logger_name``; PrintLogger has no
    ``name`` attribute for ``structlog.stdlib.add_logger_name`` to read.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger_name=name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        async with LogContext(migration="20240101_000000.init.py"):
            logger.info("migration.started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
