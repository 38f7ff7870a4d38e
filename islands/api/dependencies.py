"""FastAPI dependencies exposing the components built at startup.

`create_app` stores the settings, asset resolver and page renderer on
``app.state``; route handlers receive them through these functions rather
than importing module-level singletons, so tests can build an app around
any resolver/renderer pair.
"""

from fastapi import Request

from islands.assets.resolver import AssetResolver
from islands.config import Settings
from islands.rendering.renderer import PageRenderer


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_resolver(request: Request) -> AssetResolver:
    return request.app.state.resolver


def get_renderer(request: Request) -> PageRenderer:
    return request.app.state.renderer


__all__ = ["get_settings", "get_resolver", "get_renderer"]
