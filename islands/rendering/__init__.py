"""
Server-side page rendering.
"""

from islands.rendering.context import PageContext
from islands.rendering.helpers import format_time, island, safe_html
from islands.rendering.renderer import PageRenderer

__all__ = [
    "PageContext",
    "PageRenderer",
    "format_time",
    "island",
    "safe_html",
]
