"""
Asset resolution for client entry points.

Two resolvers implement the same `AssetResolver` protocol:

* `DevelopmentAssetResolver` points the browser at the Vite dev server. It
  never touches the filesystem; resolution is string formatting over the
  configured base URL.
* `ProductionAssetResolver` reads the build manifest once and walks an
  entry's import graph to produce stylesheet, preload and script tags.

Production ordering
-------------------
Imports are walked depth-first in pre-order, following each chunk's
``imports`` list in manifest order. CSS is collected as it is first seen
(the entry's own CSS, then each imported chunk's CSS, recursively) and
repeats are dropped. Imported chunk files become ``modulepreload`` tags in
the same order. The resulting sequence is::

    stylesheets..., modulepreloads..., script(entry)

Import cycles are tolerated; a chunk is visited at most once.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol, runtime_checkable

from markupsafe import Markup

from islands.assets.manifest import load_manifest
from islands.assets.models import (
    AssetKind,
    AssetManifest,
    AssetTag,
    ManifestChunk,
    ResolvedAssets,
)
from islands.config import Environment, Settings
from islands.exceptions import EntryNotFoundError
from islands.observability.logging import get_logger
from islands.observability.metrics import increment_counter

logger = get_logger(__name__)


VITE_CLIENT_PATH = "@vite/client"
REACT_REFRESH_PATH = "@react-refresh"

_REACT_REFRESH_PREAMBLE = """<script type="module">
import RefreshRuntime from "{url}"
RefreshRuntime.injectIntoGlobalHook(window)
window.$RefreshReg$ = () => {{}}
window.$RefreshSig$ = () => (type) => type
window.__vite_plugin_react_preamble_installed__ = true
</script>"""


@runtime_checkable
class AssetResolver(Protocol):
    """Contract shared by the development and production resolvers."""

    environment: Environment

    def resolve(self, entry_point: str) -> ResolvedAssets:
        """Return the ordered tags for `entry_point` or raise `EntryNotFoundError`."""
        ...

    def preamble(self) -> Markup:
        """Inline HTML that must run before any entry module (may be empty)."""
        ...


def _join_url(base: str, path: str) -> str:
    """Join a base URL and a relative path with exactly one slash between them."""

    if not base:
        return path
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


class DevelopmentAssetResolver:
    """Resolve entry points against a running Vite dev server."""

    environment = Environment.DEVELOPMENT

    def __init__(
        self,
        dev_server_url: str,
        hmr: bool = True,
        platform: Optional[str] = "react",
    ):
        self.dev_server_url = dev_server_url.rstrip("/")
        self.hmr = hmr
        self.platform = platform

    def resolve(self, entry_point: str) -> ResolvedAssets:
        tags: List[AssetTag] = []
        if self.hmr:
            tags.append(
                AssetTag(AssetKind.MODULE, _join_url(self.dev_server_url, VITE_CLIENT_PATH))
            )
        tags.append(AssetTag(AssetKind.MODULE, _join_url(self.dev_server_url, entry_point)))
        increment_counter(
            "asset_resolutions_total",
            labels={"environment": self.environment.value, "outcome": "ok"},
        )
        return ResolvedAssets(entry_point=entry_point, tags=tuple(tags))

    def preamble(self) -> Markup:
        if not (self.hmr and self.platform == "react"):
            return Markup("")
        url = _join_url(self.dev_server_url, REACT_REFRESH_PATH)
        return Markup(_REACT_REFRESH_PREAMBLE.format(url=url))

    def __repr__(self) -> str:
        return f"DevelopmentAssetResolver(dev_server_url={self.dev_server_url!r}, hmr={self.hmr})"


class _ManifestSnapshot:
    """A manifest together with the tags already resolved from it."""

    __slots__ = ("manifest", "cache")

    def __init__(self, manifest: AssetManifest):
        self.manifest = manifest
        self.cache: Dict[str, ResolvedAssets] = {}


class ProductionAssetResolver:
    """
    Resolve entry points from a build manifest.

    The manifest is held in an immutable snapshot. `reload` builds a new
    snapshot and replaces the reference in one assignment, so concurrent
    `resolve` calls see either the old manifest or the new one, never a mix.
    """

    environment = Environment.PRODUCTION

    def __init__(
        self,
        manifest: AssetManifest,
        base_url: str = "",
        manifest_path: Optional[Path] = None,
    ):
        self.base_url = base_url
        self.manifest_path = manifest_path
        self._snapshot = _ManifestSnapshot(manifest)
        self._reload_lock = threading.Lock()

    @classmethod
    def from_path(cls, manifest_path: Path | str, base_url: str = "") -> "ProductionAssetResolver":
        """Load the manifest eagerly; raises `ManifestLoadError` on failure."""

        path = Path(manifest_path)
        return cls(load_manifest(path), base_url=base_url, manifest_path=path)

    @property
    def manifest(self) -> AssetManifest:
        return self._snapshot.manifest

    def resolve(self, entry_point: str) -> ResolvedAssets:
        snapshot = self._snapshot
        cached = snapshot.cache.get(entry_point)
        if cached is not None:
            return cached

        try:
            resolved = self._resolve_from(snapshot.manifest, entry_point)
        except EntryNotFoundError:
            increment_counter(
                "asset_resolutions_total",
                labels={"environment": self.environment.value, "outcome": "not_found"},
            )
            raise

        increment_counter(
            "asset_resolutions_total",
            labels={"environment": self.environment.value, "outcome": "ok"},
        )
        snapshot.cache[entry_point] = resolved
        return resolved

    def preamble(self) -> Markup:
        return Markup("")

    def reload(self) -> AssetManifest:
        """
        Re-read the manifest file and swap it in.

        On failure the current manifest stays in place and the
        `ManifestLoadError` propagates to the caller.
        """

        if self.manifest_path is None:
            raise ValueError("reload() requires a resolver created with a manifest_path")

        with self._reload_lock:
            manifest = load_manifest(self.manifest_path)
            self._snapshot = _ManifestSnapshot(manifest)
        logger.info("manifest_reloaded", path=str(self.manifest_path), entries=len(manifest))
        return manifest

    def _resolve_from(self, manifest: AssetManifest, entry_point: str) -> ResolvedAssets:
        entry = manifest.get(entry_point)

        stylesheets: List[str] = []
        preloads: List[str] = []
        seen_css: set[str] = set()
        seen_files: set[str] = {entry.file}
        visited: set[str] = {entry_point}

        def collect_css(chunk: ManifestChunk) -> None:
            for css_file in chunk.css:
                if css_file not in seen_css:
                    seen_css.add(css_file)
                    stylesheets.append(css_file)

        # Explicit stack of import iterators; manifests can chain deeper than
        # the interpreter's recursion limit.
        collect_css(entry)
        stack: List[Iterator[str]] = [iter(entry.imports)]
        while stack:
            key = next(stack[-1], None)
            if key is None:
                stack.pop()
                continue
            if key in visited:
                continue
            visited.add(key)
            imported = manifest.get(key)
            if imported.file not in seen_files:
                seen_files.add(imported.file)
                preloads.append(imported.file)
            collect_css(imported)
            stack.append(iter(imported.imports))

        tags = [AssetTag(AssetKind.STYLESHEET, self._url(f)) for f in stylesheets]
        tags.extend(AssetTag(AssetKind.MODULEPRELOAD, self._url(f)) for f in preloads)
        tags.append(AssetTag(AssetKind.SCRIPT, self._url(entry.file)))
        return ResolvedAssets(entry_point=entry_point, tags=tuple(tags))

    def _url(self, file: str) -> str:
        return _join_url(self.base_url, file)

    def __repr__(self) -> str:
        return (
            f"ProductionAssetResolver(manifest_path={self.manifest_path!r}, "
            f"entries={len(self.manifest)})"
        )


def create_resolver(settings: Settings) -> AssetResolver:
    """
    Build the resolver matching the configured environment.

    In production the manifest is read here, so a broken manifest fails
    application startup rather than the first request.
    """

    if settings.environment is Environment.DEVELOPMENT:
        resolver: AssetResolver = DevelopmentAssetResolver(
            settings.dev_server_url, hmr=settings.hmr
        )
    else:
        resolver = ProductionAssetResolver.from_path(
            settings.resolved_manifest_path, base_url=settings.assets_url
        )
    logger.info("asset_resolver_ready", environment=settings.environment.value, resolver=repr(resolver))
    return resolver


__all__ = [
    "AssetResolver",
    "DevelopmentAssetResolver",
    "ProductionAssetResolver",
    "create_resolver",
]
