"""
Global pytest configuration for the React islands server

This file provides shared fixtures and enforces Python version requirements.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from islands.api.server import create_app
from islands.config import Environment, Settings

# Add tests directory to sys.path to support imports from test fixtures
_tests_dir = Path(__file__).parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))

_MIN_PY_VERSION = (3, 11)

ENTRY_POINT = "src/islands-client.js"

SAMPLE_MANIFEST: dict[str, Any] = {
    "src/islands-client.js": {
        "file": "assets/islands-client-1a2b3c.js",
        "src": "src/islands-client.js",
        "isEntry": True,
        "css": ["assets/islands-client-4d5e6f.css"],
        "imports": ["_vendors-7a8b9c.js"],
    },
    "_vendors-7a8b9c.js": {
        "file": "assets/vendors-7a8b9c.js",
        "css": ["assets/vendors-0d1e2f.css"],
    },
    "src/main.jsx": {
        "file": "assets/main-abc123.js",
        "src": "src/main.jsx",
        "isEntry": True,
        "imports": ["_vendors-7a8b9c.js"],
    },
}


def _verify_python_version() -> str:
    """Return the interpreter version string or exit if <3.11."""
    version_info = sys.version_info
    version_str = ".".join(map(str, version_info[:3]))
    if version_info < _MIN_PY_VERSION:
        pytest.exit(
            f"ERROR: pytest must run on Python 3.11+ (detected {version_str}).",
            returncode=1,
        )
    return version_str


def pytest_report_header(config: pytest.Config) -> str:
    version_str = _verify_python_version()
    return f"Python interpreter verified for pytest: {version_str}"


@pytest.fixture(scope="session", autouse=True)
def register_markers(pytestconfig: pytest.Config) -> None:
    """Register project markers to prevent unknown marker warnings."""
    markers = {
        "unit": "Unit tests that should execute quickly.",
        "integration": "Integration tests hitting multiple components.",
        "slow": "Slow or high-cost tests.",
    }
    for name, description in markers.items():
        pytestconfig.addinivalue_line("markers", f"{name}: {description}")


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    path = tmp_path / "static"
    path.mkdir()
    return path


@pytest.fixture
def write_manifest(static_dir: Path) -> Callable[..., Path]:
    """Write a manifest (dict or raw text) into the static dir and return its path."""

    def _write(data: Any, name: str = "manifest.json") -> Path:
        path = static_dir / name
        text = data if isinstance(data, str) else json.dumps(data)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def dev_settings(static_dir: Path) -> Settings:
    return Settings(
        environment=Environment.DEVELOPMENT,
        assets_path=static_dir,
        dev_server_url="http://localhost:5173",
        entry_point=ENTRY_POINT,
        log_requests=False,
    )


@pytest.fixture
def prod_settings(static_dir: Path, write_manifest: Callable[..., Path]) -> Settings:
    write_manifest(SAMPLE_MANIFEST)
    return Settings(
        environment=Environment.PRODUCTION,
        assets_path=static_dir,
        entry_point=ENTRY_POINT,
        server_url="https://islands.example.com",
        log_requests=False,
    )


@pytest.fixture
def dev_client(dev_settings: Settings):
    with TestClient(create_app(dev_settings)) as client:
        yield client


@pytest.fixture
def prod_client(prod_settings: Settings):
    with TestClient(create_app(prod_settings)) as client:
        yield client
