"""Prometheus metrics for the islands server.

Tracks:
- HTTP request counts and latency per route
- Asset resolution outcomes per environment
- Template render latency and failures

Usage:
    from islands.observability.metrics import increment_counter, track_duration

    increment_counter("asset_resolutions_total", labels={"environment": "production", "outcome": "ok"})

    with track_duration("template_render_duration_seconds", labels={"template": "home.html"}):
        renderer.render("home.html", context)
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)


_PREFIX = "islands_"

# Global registry for metrics
_registry = CollectorRegistry()

# HTTP Metrics
http_requests_total = Counter(
    "islands_http_requests_total",
    "Total number of HTTP requests by method, route and status",
    ["method", "route", "status"],
    registry=_registry,
)

http_request_duration_seconds = Histogram(
    "islands_http_request_duration_seconds",
    "Duration of HTTP request handling in seconds",
    ["route"],
    registry=_registry,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0, float("inf")),
)

# Asset Metrics
asset_resolutions_total = Counter(
    "islands_asset_resolutions_total",
    "Total number of asset resolutions by environment and outcome",
    ["environment", "outcome"],
    registry=_registry,
)

# Rendering Metrics
template_render_duration_seconds = Histogram(
    "islands_template_render_duration_seconds",
    "Duration of template rendering in seconds",
    ["template"],
    registry=_registry,
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, float("inf")),
)

render_errors_total = Counter(
    "islands_render_errors_total",
    "Total number of template rendering failures",
    ["template"],
    registry=_registry,
)


def increment_counter(
    metric_name: str,
    value: float = 1.0,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    """Increment a counter metric.

    Args:
        metric_name: Name of the counter (with or without islands_ prefix)
        value: Amount to increment by (default: 1.0)
        labels: Optional labels as key-value pairs
    """
    metric = _get_metric(metric_name)
    if metric and isinstance(metric, Counter):
        if labels:
            metric.labels(**labels).inc(value)
        else:
            metric.inc(value)


def record_histogram(
    metric_name: str,
    value: float,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    """Record a histogram observation.

    Args:
        metric_name: Name of the histogram (with or without islands_ prefix)
        value: Value to observe
        labels: Optional labels as key-value pairs
    """
    metric = _get_metric(metric_name)
    if metric and isinstance(metric, Histogram):
        if labels:
            metric.labels(**labels).observe(value)
        else:
            metric.observe(value)


@contextmanager
def track_duration(
    metric_name: str,
    labels: Optional[Dict[str, str]] = None,
) -> Iterator[None]:
    """Context manager recording the wrapped block's duration into a histogram."""
    start_time = time.perf_counter()
    try:
        yield
    finally:
        record_histogram(metric_name, time.perf_counter() - start_time, labels)


def get_metrics_registry() -> CollectorRegistry:
    """Get the global metrics registry."""
    return _registry


def get_metrics_output() -> bytes:
    """Get Prometheus-formatted metrics output."""
    return generate_latest(_registry)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST


def _get_metric(metric_name: str) -> Any:
    """Look up a module-level metric by name (prefix optional)."""
    if metric_name.startswith(_PREFIX):
        metric_name = metric_name[len(_PREFIX):]
    return globals().get(metric_name)


__all__ = [
    "increment_counter",
    "record_histogram",
    "track_duration",
    "get_metrics_registry",
    "get_metrics_output",
    "get_metrics_content_type",
    "http_requests_total",
    "http_request_duration_seconds",
    "asset_resolutions_total",
    "template_render_duration_seconds",
    "render_errors_total",
]
