"""
Exception hierarchy for the islands server.

Errors fall into two groups:

* Startup-fatal: ``ConfigError``, ``ManifestLoadError`` and
  ``TemplateLoadError``. They propagate out of application construction so
  the process never binds a port with a half-initialised asset or template
  set.
* Per-request: ``EntryNotFoundError`` and ``TemplateExecutionError``. The
  HTTP layer catches them, logs the full detail, and decides how much of the
  message the client gets to see.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class IslandsError(Exception):
    """Base exception for all islands server errors."""


class ConfigError(IslandsError):
    """Raised when configuration cannot be loaded or validated."""


class AssetError(IslandsError):
    """Base class for asset resolution failures."""


class ManifestLoadError(AssetError):
    """
    Raised when the build manifest cannot be read or parsed.

    Attributes:
        path: Manifest path that failed to load (if known)
    """

    def __init__(self, message: str, path: Optional[Path | str] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class EntryNotFoundError(AssetError):
    """
    Raised when an entry point is missing from the manifest.

    Attributes:
        entry_point: The manifest key that was looked up
    """

    def __init__(self, entry_point: str, message: Optional[str] = None):
        super().__init__(message or f"Entry point not found in manifest: {entry_point}")
        self.entry_point = entry_point


class RenderError(IslandsError):
    """Base class for template failures."""

    def __init__(self, message: str, template_name: Optional[str] = None):
        super().__init__(message)
        self.template_name = template_name


class TemplateLoadError(RenderError):
    """Raised when templates cannot be loaded or compiled at startup."""


class TemplateExecutionError(RenderError):
    """Raised when a template fails while rendering a page."""


__all__ = [
    "IslandsError",
    "ConfigError",
    "AssetError",
    "ManifestLoadError",
    "EntryNotFoundError",
    "RenderError",
    "TemplateLoadError",
    "TemplateExecutionError",
]
