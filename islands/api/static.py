"""Static file serving for built assets with per-extension cache headers."""

from pathlib import Path
from typing import Any

from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

from islands.observability.logging import get_logger

logger = get_logger(__name__)

# Hashed bundles never change under the same name.
IMMUTABLE_CACHE = "public, max-age=31536000, immutable"
IMAGE_CACHE = "public, max-age=86400"
DEFAULT_CACHE = "public, max-age=3600"

_IMMUTABLE_SUFFIXES = {".js", ".css"}
_IMAGE_SUFFIXES = {".png", ".jpg", ".svg", ".webp"}


def cache_control_for(path: str) -> str:
    """Pick the Cache-Control value for a request path."""

    suffix = Path(path).suffix.lower()
    if suffix in _IMMUTABLE_SUFFIXES:
        return IMMUTABLE_CACHE
    if suffix in _IMAGE_SUFFIXES:
        return IMAGE_CACHE
    return DEFAULT_CACHE


class CachedStaticFiles(StaticFiles):
    """`StaticFiles` that stamps a Cache-Control header on successful responses."""

    async def get_response(self, path: str, scope: Scope) -> Response:
        response = await super().get_response(path, scope)
        if response.status_code < 400:
            response.headers["Cache-Control"] = cache_control_for(path)
        return response


def mount_static(directory: Path, **kwargs: Any) -> CachedStaticFiles:
    """Create the static app, creating `directory` first if it does not exist."""

    if not directory.exists():
        logger.info("static_directory_created", path=str(directory))
        directory.mkdir(parents=True, exist_ok=True)
    return CachedStaticFiles(directory=str(directory), **kwargs)


__all__ = [
    "CachedStaticFiles",
    "cache_control_for",
    "mount_static",
    "IMMUTABLE_CACHE",
    "IMAGE_CACHE",
    "DEFAULT_CACHE",
]
