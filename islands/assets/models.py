"""
Data structures for build manifests and resolved asset tags.

Everything here is immutable: a manifest is loaded once and shared across
request workers, and a `ResolvedAssets` value may be cached and handed to
many concurrent renders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

from markupsafe import Markup, escape

from islands.exceptions import EntryNotFoundError


class AssetKind(str, Enum):
    """Kind of tag emitted into the page head."""

    SCRIPT = "script"
    MODULE = "module"
    STYLESHEET = "stylesheet"
    MODULEPRELOAD = "modulepreload"


@dataclass(frozen=True, slots=True)
class AssetTag:
    """A single script/style reference."""

    kind: AssetKind
    url: str

    def to_html(self) -> Markup:
        """Render the tag as trusted HTML with the URL attribute-escaped."""

        url = escape(self.url)
        if self.kind is AssetKind.STYLESHEET:
            return Markup(f'<link rel="stylesheet" href="{url}">')
        if self.kind is AssetKind.MODULEPRELOAD:
            return Markup(f'<link rel="modulepreload" href="{url}">')
        if self.kind is AssetKind.SCRIPT:
            return Markup(f'<script type="module" crossorigin src="{url}"></script>')
        return Markup(f'<script type="module" src="{url}"></script>')

    def __str__(self) -> str:
        return f"{self.kind.value} {self.url}"


@dataclass(frozen=True, slots=True)
class ResolvedAssets:
    """
    Ordered tags needed to load one entry point.

    Ordering is part of the contract: stylesheets come before preloads,
    and the entry script is always last.
    """

    entry_point: str
    tags: Tuple[AssetTag, ...] = ()

    def __iter__(self) -> Iterator[AssetTag]:
        return iter(self.tags)

    def __len__(self) -> int:
        return len(self.tags)

    @property
    def stylesheets(self) -> Tuple[AssetTag, ...]:
        return tuple(tag for tag in self.tags if tag.kind is AssetKind.STYLESHEET)

    @property
    def scripts(self) -> Tuple[AssetTag, ...]:
        return tuple(
            tag
            for tag in self.tags
            if tag.kind in (AssetKind.SCRIPT, AssetKind.MODULE)
        )

    def to_html(self, separator: str = "\n") -> Markup:
        """Join all tags into one trusted HTML fragment."""

        return Markup(separator).join(tag.to_html() for tag in self.tags)


@dataclass(frozen=True, slots=True)
class ManifestChunk:
    """
    One record from a Vite build manifest.

    Only the fields the resolver needs are kept; anything else Vite writes
    (``assets``, ``dynamicImports``...) is ignored at load time.
    """

    file: str
    css: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()
    is_entry: bool = False
    src: Optional[str] = None


@dataclass(frozen=True, eq=False)
class AssetManifest:
    """Read-only mapping from manifest key to chunk record."""

    chunks: Mapping[str, ManifestChunk] = field(default_factory=dict)
    source: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "chunks", MappingProxyType(dict(self.chunks)))

    def __contains__(self, key: object) -> bool:
        return key in self.chunks

    def __len__(self) -> int:
        return len(self.chunks)

    def get(self, entry_point: str) -> ManifestChunk:
        """
        Look up a chunk by manifest key.

        Raises:
            EntryNotFoundError: if the key is not in the manifest
        """

        try:
            return self.chunks[entry_point]
        except KeyError:
            raise EntryNotFoundError(entry_point) from None

    def entries(self) -> Tuple[str, ...]:
        """Keys flagged as entry points by the build, in manifest order."""

        return tuple(key for key, chunk in self.chunks.items() if chunk.is_entry)


__all__ = [
    "AssetKind",
    "AssetTag",
    "ResolvedAssets",
    "ManifestChunk",
    "AssetManifest",
]
