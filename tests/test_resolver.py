"""
Tests for development and production asset resolution
"""
import builtins
import io
import json
import os
import pathlib

import pytest

from islands.assets import (
    AssetKind,
    AssetResolver,
    AssetTag,
    DevelopmentAssetResolver,
    ProductionAssetResolver,
    create_resolver,
    parse_manifest,
)
from islands.config import Environment, Settings
from islands.exceptions import EntryNotFoundError, ManifestLoadError

from conftest import SAMPLE_MANIFEST


def _tags(resolved):
    return [(tag.kind, tag.url) for tag in resolved]


# ========================================
# Production mode
# ========================================


class TestProductionResolver:
    """Manifest-driven resolution"""

    def test_single_entry_with_css(self):
        manifest = parse_manifest(
            {
                "src/main.js": {
                    "file": "assets/main-abc123.js",
                    "css": ["assets/main-def456.css"],
                    "imports": [],
                }
            }
        )

        resolved = ProductionAssetResolver(manifest).resolve("src/main.js")

        assert _tags(resolved) == [
            (AssetKind.STYLESHEET, "assets/main-def456.css"),
            (AssetKind.SCRIPT, "assets/main-abc123.js"),
        ]

    def test_missing_entry_raises_instead_of_empty_result(self):
        resolver = ProductionAssetResolver(parse_manifest(SAMPLE_MANIFEST))

        with pytest.raises(EntryNotFoundError) as exc_info:
            resolver.resolve("src/missing.js")

        assert exc_info.value.entry_point == "src/missing.js"

    def test_imported_chunks_are_preloaded_before_entry(self):
        resolver = ProductionAssetResolver(parse_manifest(SAMPLE_MANIFEST))

        resolved = resolver.resolve("src/islands-client.js")

        assert _tags(resolved) == [
            (AssetKind.STYLESHEET, "assets/islands-client-4d5e6f.css"),
            (AssetKind.STYLESHEET, "assets/vendors-0d1e2f.css"),
            (AssetKind.MODULEPRELOAD, "assets/vendors-7a8b9c.js"),
            (AssetKind.SCRIPT, "assets/islands-client-1a2b3c.js"),
        ]

    def test_nested_imports_collect_css_depth_first_and_dedupe(self):
        manifest = parse_manifest(
            {
                "src/app.js": {
                    "file": "app.js",
                    "css": ["app.css", "shared.css"],
                    "imports": ["_a.js", "_b.js"],
                },
                "_a.js": {"file": "a.js", "css": ["a.css"], "imports": ["_c.js"]},
                "_b.js": {"file": "b.js", "css": ["shared.css", "b.css"], "imports": ["_c.js"]},
                "_c.js": {"file": "c.js", "css": ["c.css", "a.css"]},
            }
        )

        resolved = ProductionAssetResolver(manifest).resolve("src/app.js")

        assert [tag.url for tag in resolved.stylesheets] == [
            "app.css",
            "shared.css",
            "a.css",
            "c.css",
            "b.css",
        ]
        assert [tag.url for tag in resolved if tag.kind is AssetKind.MODULEPRELOAD] == [
            "a.js",
            "c.js",
            "b.js",
        ]
        assert resolved.tags[-1] == AssetTag(AssetKind.SCRIPT, "app.js")

    def test_deep_import_chain_resolves_in_order(self):
        depth = 2000
        chunks = {"src/app.js": {"file": "app.js", "css": ["app.css"], "imports": ["_c0.js"]}}
        for i in range(depth):
            imports = [f"_c{i + 1}.js"] if i + 1 < depth else []
            chunks[f"_c{i}.js"] = {"file": f"c{i}.js", "css": [f"c{i}.css"], "imports": imports}

        resolved = ProductionAssetResolver(parse_manifest(chunks)).resolve("src/app.js")

        assert [tag.url for tag in resolved.stylesheets] == ["app.css"] + [
            f"c{i}.css" for i in range(depth)
        ]
        assert [tag.url for tag in resolved if tag.kind is AssetKind.MODULEPRELOAD] == [
            f"c{i}.js" for i in range(depth)
        ]
        assert resolved.tags[-1] == AssetTag(AssetKind.SCRIPT, "app.js")

    def test_import_cycles_terminate(self):
        manifest = parse_manifest(
            {
                "src/app.js": {"file": "app.js", "imports": ["_a.js"]},
                "_a.js": {"file": "a.js", "css": ["a.css"], "imports": ["_b.js"]},
                "_b.js": {"file": "b.js", "imports": ["_a.js", "src/app.js"]},
            }
        )

        resolved = ProductionAssetResolver(manifest).resolve("src/app.js")

        assert _tags(resolved) == [
            (AssetKind.STYLESHEET, "a.css"),
            (AssetKind.MODULEPRELOAD, "a.js"),
            (AssetKind.MODULEPRELOAD, "b.js"),
            (AssetKind.SCRIPT, "app.js"),
        ]

    @pytest.mark.parametrize("entry", ["src/islands-client.js", "src/main.jsx", "_vendors-7a8b9c.js"])
    def test_resolution_is_deterministic(self, entry):
        first = ProductionAssetResolver(parse_manifest(SAMPLE_MANIFEST)).resolve(entry)
        second = ProductionAssetResolver(
            parse_manifest(json.loads(json.dumps(SAMPLE_MANIFEST)))
        ).resolve(entry)

        assert first.tags == second.tags
        assert first.to_html() == second.to_html()

    def test_repeated_resolution_is_served_from_cache(self):
        resolver = ProductionAssetResolver(parse_manifest(SAMPLE_MANIFEST))

        assert resolver.resolve("src/main.jsx") is resolver.resolve("src/main.jsx")

    @pytest.mark.parametrize("entry", ["src/islands-client.js", "src/main.jsx"])
    def test_stylesheets_precede_entry_script(self, entry):
        resolved = ProductionAssetResolver(parse_manifest(SAMPLE_MANIFEST)).resolve(entry)
        kinds = [tag.kind for tag in resolved]

        assert kinds[-1] is AssetKind.SCRIPT
        assert AssetKind.STYLESHEET in kinds
        last_css = max(i for i, kind in enumerate(kinds) if kind is AssetKind.STYLESHEET)
        assert last_css < len(kinds) - 1

    def test_base_url_prefixes_every_tag(self):
        resolver = ProductionAssetResolver(parse_manifest(SAMPLE_MANIFEST), base_url="/static/")

        urls = [tag.url for tag in resolver.resolve("src/main.jsx")]

        assert urls == [
            "/static/assets/vendors-0d1e2f.css",
            "/static/assets/vendors-7a8b9c.js",
            "/static/assets/main-abc123.js",
        ]

    def test_preamble_is_empty(self):
        resolver = ProductionAssetResolver(parse_manifest(SAMPLE_MANIFEST))

        assert resolver.preamble() == ""


class TestManifestReload:
    """Copy-on-write manifest replacement"""

    def test_reload_swaps_manifest(self, write_manifest):
        path = write_manifest({"src/main.js": {"file": "assets/main-v1.js"}})
        resolver = ProductionAssetResolver.from_path(path)
        assert resolver.resolve("src/main.js").tags[-1].url == "assets/main-v1.js"

        write_manifest({"src/main.js": {"file": "assets/main-v2.js"}})
        resolver.reload()

        assert resolver.resolve("src/main.js").tags[-1].url == "assets/main-v2.js"

    def test_failed_reload_keeps_previous_manifest(self, write_manifest):
        path = write_manifest({"src/main.js": {"file": "assets/main-v1.js"}})
        resolver = ProductionAssetResolver.from_path(path)
        original = resolver.manifest

        write_manifest("{not json")
        with pytest.raises(ManifestLoadError):
            resolver.reload()

        assert resolver.manifest is original
        assert resolver.resolve("src/main.js").tags[-1].url == "assets/main-v1.js"

    def test_reload_without_path_is_rejected(self):
        resolver = ProductionAssetResolver(parse_manifest(SAMPLE_MANIFEST))

        with pytest.raises(ValueError):
            resolver.reload()


# ========================================
# Development mode
# ========================================


class TestDevelopmentResolver:
    """Dev server resolution"""

    def test_entry_points_at_dev_server(self):
        resolver = DevelopmentAssetResolver("http://localhost:5173", hmr=False)

        resolved = resolver.resolve("src/main.js")

        assert _tags(resolved) == [(AssetKind.MODULE, "http://localhost:5173/src/main.js")]

    def test_hmr_client_is_injected_first(self):
        resolver = DevelopmentAssetResolver("http://localhost:5173")

        resolved = resolver.resolve("src/main.js")

        assert _tags(resolved) == [
            (AssetKind.MODULE, "http://localhost:5173/@vite/client"),
            (AssetKind.MODULE, "http://localhost:5173/src/main.js"),
        ]

    @pytest.mark.parametrize(
        "base, entry",
        [
            ("http://localhost:5173/", "src/main.js"),
            ("http://localhost:5173", "/src/main.js"),
            ("http://localhost:5173/", "/src/main.js"),
        ],
    )
    def test_slashes_are_normalised(self, base, entry):
        resolver = DevelopmentAssetResolver(base, hmr=False)

        assert resolver.resolve(entry).tags[0].url == "http://localhost:5173/src/main.js"

    def test_never_touches_filesystem(self, monkeypatch):
        resolver = DevelopmentAssetResolver("http://localhost:5173")

        def _no_io(*args, **kwargs):
            raise AssertionError("filesystem access during development resolution")

        for target, name in [
            (builtins, "open"),
            (io, "open"),
            (os, "stat"),
            (pathlib.Path, "open"),
            (pathlib.Path, "read_text"),
            (pathlib.Path, "read_bytes"),
            (pathlib.Path, "exists"),
        ]:
            monkeypatch.setattr(target, name, _no_io)
        resolved = resolver.resolve("src/any-entry-at-all.js")

        assert len(resolved) == 2
        assert resolver.preamble()

    def test_factory_ignores_broken_manifest(self, static_dir, write_manifest):
        write_manifest("{ not a manifest")
        settings = Settings(environment=Environment.DEVELOPMENT, assets_path=static_dir, hmr=False)

        resolved = create_resolver(settings).resolve("src/main.js")

        assert _tags(resolved) == [(AssetKind.MODULE, "http://localhost:5173/src/main.js")]

    def test_unknown_entries_still_resolve(self):
        resolver = DevelopmentAssetResolver("http://localhost:5173", hmr=False)

        assert len(resolver.resolve("src/not-in-any-manifest.js")) == 1

    def test_react_refresh_preamble(self):
        preamble = DevelopmentAssetResolver("http://localhost:5173").preamble()

        assert 'import RefreshRuntime from "http://localhost:5173/@react-refresh"' in preamble
        assert "__vite_plugin_react_preamble_installed__" in preamble

    def test_no_preamble_without_hmr(self):
        assert DevelopmentAssetResolver("http://localhost:5173", hmr=False).preamble() == ""


# ========================================
# Factory
# ========================================


class TestCreateResolver:
    """Building the resolver from settings"""

    def test_development_ignores_missing_manifest(self, tmp_path):
        settings = Settings(
            environment=Environment.DEVELOPMENT,
            assets_path=tmp_path / "does-not-exist",
        )

        resolver = create_resolver(settings)

        assert isinstance(resolver, DevelopmentAssetResolver)
        assert isinstance(resolver, AssetResolver)

    def test_production_loads_manifest_eagerly(self, prod_settings):
        resolver = create_resolver(prod_settings)

        assert isinstance(resolver, ProductionAssetResolver)
        assert resolver.resolve("src/islands-client.js").tags[-1].url == (
            "/static/assets/islands-client-1a2b3c.js"
        )

    def test_production_with_malformed_manifest_fails(self, static_dir, write_manifest):
        write_manifest("{ definitely not json")
        settings = Settings(environment=Environment.PRODUCTION, assets_path=static_dir)

        with pytest.raises(ManifestLoadError):
            create_resolver(settings)

    def test_production_never_falls_back_to_dev_server(self, tmp_path):
        settings = Settings(environment=Environment.PRODUCTION, assets_path=tmp_path / "empty")

        with pytest.raises(ManifestLoadError):
            create_resolver(settings)


class TestAssetTagHtml:
    """HTML rendering of tags"""

    @pytest.mark.parametrize(
        "kind, expected",
        [
            (AssetKind.STYLESHEET, '<link rel="stylesheet" href="/a.css">'),
            (AssetKind.MODULEPRELOAD, '<link rel="modulepreload" href="/a.css">'),
            (AssetKind.SCRIPT, '<script type="module" crossorigin src="/a.css"></script>'),
            (AssetKind.MODULE, '<script type="module" src="/a.css"></script>'),
        ],
    )
    def test_tag_markup(self, kind, expected):
        assert AssetTag(kind, "/a.css").to_html() == expected

    def test_url_is_attribute_escaped(self):
        html = AssetTag(AssetKind.STYLESHEET, '/a.css" onload="x').to_html()

        assert 'onload="x"' not in html
        assert "&#34;" in html
