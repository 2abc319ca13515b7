"""
Structured logging for isolator.

Thin structlog configuration shared by the CLI and the library. Events are
dotted names (``workspace.located``, ``member.copied``) with key/value
fields; the current run id is bound into the context so every line of one
run can be correlated.

Output goes to stderr so ``--json`` results on stdout stay machine-readable.

Examples:
    >>> from isolator.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.debug("member.copied", source="pkg/index.js")

Tags:
    logging, structlog, observability, isolator
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "isolator"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names ECS compatible for JSON output."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def level_for(verbose: bool) -> str:
    """Map the CLI verbosity toggle to a log level."""
    return "DEBUG" if verbose else "WARNING"


def configure_logging(
    level: str = "WARNING",
    json_format: bool | None = None,
    service: str = "isolator",
    add_timestamp: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
        stream: Output stream, defaults to stderr
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    out = stream or sys.stderr
    if json_format is None:
        json_format = not out.isatty()

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
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    # Loggers are not cached so a later configure_logging() call (one per
    # CLI invocation) takes effect on module-level loggers too.
    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The name is also bound as ``logger_name``; print loggers have no name
    of their own.
    """
    if name:
        return structlog.get_logger(name, logger_name=name)
    return structlog.get_logger()


def ensure_logging() -> None:
    """Install the default configuration unless structlog is configured.

    Library callers that never call :func:`configure_logging` would
    otherwise get structlog's defaults: every level, printed to stdout.
    """
    if not structlog.is_configured():
        configure_logging()


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
        with LogContext(run_id="abc123"):
            logger.info("closure.traced")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "ensure_logging",
    "level_for",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
