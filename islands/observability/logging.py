"""Structured logging with correlation IDs for the islands server.

This module configures structlog so that:
- Production emits JSON lines suitable for log aggregation
- Development emits colourised console output
- Every event raised while serving a request carries its correlation ID
- Log files can optionally be rotated

Usage:
    from islands.observability import get_logger, configure_logging

    # Configure logging once at startup
    configure_logging(level="INFO", format="json")

    logger = get_logger(__name__)
    logger.info("manifest_loaded", path="static/manifest.json", entries=4)
"""

import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Optional

import structlog
from structlog.types import EventDict, Processor

REQUEST_ID_PREFIX = "req-"

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp the active request's ID onto the event, if one is set."""
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def _stdlib_handlers(
    log_file: Optional[Path], max_bytes: int, backup_count: int
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=str(log_file),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )
    return handlers


def configure_logging(
    level: str = "INFO",
    format: str = "json",
    log_file: Optional[Path] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Route structlog through the stdlib root logger.

    Safe to call more than once; each call replaces the root handlers, so
    every `create_app` can apply its own settings.

    Args:
        level: Log level name; unknown names fall back to INFO
        format: "json" for production, "console" for development
        log_file: Also write to this file, rotated at `max_bytes`
    """
    logging_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging_level)
    for handler in _stdlib_handlers(log_file, max_bytes, backup_count):
        handler.setLevel(logging_level)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Bind the request ID for the current context.

    A missing or blank ID (no usable X-Request-ID header) gets a generated
    ``req-<hex>`` value. Returns the ID that was bound.
    """
    if not correlation_id or not correlation_id.strip():
        correlation_id = f"{REQUEST_ID_PREFIX}{uuid.uuid4().hex[:12]}"
    correlation_id_var.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


__all__ = [
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "clear_correlation_id",
    "get_correlation_id",
]
