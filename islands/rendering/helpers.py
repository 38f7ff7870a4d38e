"""
Functions exposed to page templates.

`safe_html` bypasses autoescaping. Only pass it strings the server built
itself (asset tags, preambles); request-derived data must never reach it.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Mapping, Optional

from markupsafe import Markup

TIME_FORMAT = "%b %d, %Y %H:%M:%S"


def format_time(value: datetime | str) -> str:
    """Format a datetime (or ISO-8601 string) as ``Jan 02, 2006 15:04:05``."""

    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime(TIME_FORMAT)


def safe_html(value: Any) -> Markup:
    """Mark server-controlled content as trusted HTML."""

    return Markup(value)


def island(
    component: str,
    props: Optional[Mapping[str, Any]] = None,
    fallback: Any = "",
) -> Markup:
    """
    Emit the container element the client script hydrates.

    Props are JSON-encoded and attribute-escaped; `fallback` is the
    server-rendered content shown before hydration (escaped unless it is
    already Markup).
    """

    props_json = json.dumps(dict(props or {}), separators=(",", ":"), default=str)
    return Markup(
        '<div data-island data-component="{}" data-props="{}">{}</div>'
    ).format(component, props_json, fallback)


TEMPLATE_FILTERS = {
    "format_time": format_time,
    "safe_html": safe_html,
}

TEMPLATE_GLOBALS = {
    "format_time": format_time,
    "safe_html": safe_html,
    "island": island,
}


__all__ = [
    "TIME_FORMAT",
    "format_time",
    "safe_html",
    "island",
    "TEMPLATE_FILTERS",
    "TEMPLATE_GLOBALS",
]
