"""
Asset resolution: turn a client entry point into script/style tags.
"""

from islands.assets.manifest import load_manifest, parse_manifest
from islands.assets.models import (
    AssetKind,
    AssetManifest,
    AssetTag,
    ManifestChunk,
    ResolvedAssets,
)
from islands.assets.resolver import (
    AssetResolver,
    DevelopmentAssetResolver,
    ProductionAssetResolver,
    create_resolver,
)

__all__ = [
    "AssetKind",
    "AssetManifest",
    "AssetTag",
    "ManifestChunk",
    "ResolvedAssets",
    "AssetResolver",
    "DevelopmentAssetResolver",
    "ProductionAssetResolver",
    "create_resolver",
    "load_manifest",
    "parse_manifest",
]
