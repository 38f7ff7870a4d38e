"""Observability for the islands server.

Components:
    - logging: Structured logging with structlog and correlation IDs
    - metrics: Prometheus metrics for requests, asset resolution and rendering

Usage:
    from islands.observability import get_logger, increment_counter

    logger = get_logger(__name__)
    logger.info("page_rendered", template="home.html")
"""

from islands.observability.logging import (
    configure_logging,
    get_logger,
    set_correlation_id,
    clear_correlation_id,
    get_correlation_id,
)
from islands.observability.metrics import (
    increment_counter,
    record_histogram,
    track_duration,
    get_metrics_registry,
    get_metrics_output,
    get_metrics_content_type,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "clear_correlation_id",
    "get_correlation_id",
    "increment_counter",
    "record_histogram",
    "track_duration",
    "get_metrics_registry",
    "get_metrics_output",
    "get_metrics_content_type",
]
