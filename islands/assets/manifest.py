"""
Build manifest loading.

The manifest is the JSON document Vite writes when ``build.manifest`` is
enabled: an object keyed by source path whose values describe the emitted
file, its CSS and the chunks it imports::

    {
        "src/main.js": {
            "file": "assets/main-abc123.js",
            "css": ["assets/main-def456.css"],
            "imports": ["_vendor-1a2b3c.js"],
            "isEntry": true
        }
    }

Any problem with the file is a `ManifestLoadError`; callers treat it as
fatal at startup.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from islands.assets.models import AssetManifest, ManifestChunk
from islands.exceptions import ManifestLoadError
from islands.observability.logging import get_logger

logger = get_logger(__name__)


class _ChunkRecord(BaseModel):
    """Validation schema for one manifest entry."""

    file: str = Field(..., min_length=1)
    css: List[str] = Field(default_factory=list)
    imports: List[str] = Field(default_factory=list)
    is_entry: bool = Field(False, alias="isEntry")
    src: str | None = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True, strict=True)


def load_manifest(path: Path | str) -> AssetManifest:
    """
    Read and validate a manifest file.

    Args:
        path: Location of ``manifest.json``

    Returns:
        Immutable AssetManifest

    Raises:
        ManifestLoadError: if the file is missing, unreadable, not valid JSON,
            or does not have the expected shape.
    """

    manifest_path = Path(path)
    try:
        raw_text = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ManifestLoadError(f"Manifest file not found: {manifest_path}", path=manifest_path) from None
    except OSError as exc:
        raise ManifestLoadError(
            f"Could not read manifest {manifest_path}: {exc}", path=manifest_path
        ) from exc

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ManifestLoadError(
            f"Malformed JSON in manifest {manifest_path}: {exc}", path=manifest_path
        ) from exc

    manifest = parse_manifest(data, source=str(manifest_path))
    logger.info("manifest_loaded", path=str(manifest_path), entries=len(manifest))
    return manifest


def parse_manifest(data: Any, source: str | None = None) -> AssetManifest:
    """
    Validate decoded manifest JSON and build an AssetManifest.

    Every key listed in an ``imports`` array must itself be present in the
    manifest, otherwise import walks could silently drop chunks.
    """

    label = source or "<manifest>"
    if not isinstance(data, dict):
        raise ManifestLoadError(
            f"Manifest {label} must be a JSON object, got {type(data).__name__}",
            path=source,
        )

    chunks: Dict[str, ManifestChunk] = {}
    for key, record in data.items():
        try:
            parsed = _ChunkRecord.model_validate(record)
        except ValidationError as exc:
            raise ManifestLoadError(
                f"Invalid manifest entry {key!r} in {label}: {exc}", path=source
            ) from exc
        chunks[key] = ManifestChunk(
            file=parsed.file,
            css=tuple(parsed.css),
            imports=tuple(parsed.imports),
            is_entry=parsed.is_entry,
            src=parsed.src,
        )

    for key, chunk in chunks.items():
        missing = [name for name in chunk.imports if name not in chunks]
        if missing:
            raise ManifestLoadError(
                f"Manifest entry {key!r} in {label} imports unknown chunks: {missing}",
                path=source,
            )

    return AssetManifest(chunks=chunks, source=source)


__all__ = ["load_manifest", "parse_manifest"]
