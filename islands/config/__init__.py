"""
Configuration loading for the islands server.

Values are resolved once at startup using the following precedence:

1. Explicit overrides passed to `load_config`
2. Environment variables (e.g., APP_ENV, DEV_SERVER_URL)
3. `islands.toml` if present in the working directory
4. Built-in defaults

The resulting `Settings` object is frozen and handed to the components that
need it; nothing reads the environment after startup.
"""

from __future__ import annotations

import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from islands.exceptions import ConfigError

__all__ = [
    "ConfigError",
    "Environment",
    "Settings",
    "load_config",
]


DEFAULT_ASSETS_PATH = Path("./static")
DEFAULT_ENTRY_POINT = "src/islands-client.js"


class Environment(str, Enum):
    """Runtime mode. Every environment-dependent branch keys off this."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, raw_value: str) -> "Environment":
        """Convert a string to an Environment, accepting common aliases."""

        normalized = raw_value.strip().lower()
        aliases = {
            "dev": cls.DEVELOPMENT,
            "development": cls.DEVELOPMENT,
            "prod": cls.PRODUCTION,
            "production": cls.PRODUCTION,
        }
        try:
            return aliases[normalized]
        except KeyError:
            raise ConfigError(f"Unknown environment: {raw_value}") from None


class Settings(BaseModel):
    """Top-level configuration shared by the resolver, renderer and server."""

    environment: Environment = Field(
        Environment.DEVELOPMENT, description="Development or production mode"
    )
    host: str = Field("0.0.0.0", description="Interface to bind", min_length=1)
    port: int = Field(8080, description="Port to listen on", ge=1, le=65535)
    server_url: str = Field(
        "http://localhost:8080", description="Public origin of this server"
    )
    dev_server_url: str = Field(
        "http://localhost:5173", description="Base URL of the Vite dev server"
    )
    assets_path: Path = Field(
        DEFAULT_ASSETS_PATH, description="Directory holding built assets"
    )
    manifest_path: Optional[Path] = Field(
        None, description="Build manifest path (defaults to assets_path/manifest.json)"
    )
    assets_url: str = Field(
        "/static/", description="URL prefix built asset files are served under"
    )
    entry_point: str = Field(
        DEFAULT_ENTRY_POINT, description="Client entry point injected into pages", min_length=1
    )
    hmr: bool = Field(
        True,
        description="Inject the dev server HMR client (off: the entry module is the only tag)",
    )
    log_requests: bool = Field(True, description="Log every HTTP request")
    log_level: str = Field("INFO", description="Log level")
    log_format: Optional[str] = Field(
        None, description="'json' or 'console' (defaults by environment)"
    )
    log_file: Optional[Path] = Field(None, description="Optional rotating log file")
    request_timeout: float = Field(30.0, description="Per-request timeout in seconds", gt=0)
    api_concurrency: int = Field(
        100, description="Maximum in-flight /api requests", ge=1
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("environment", mode="before")
    @classmethod
    def _coerce_environment(cls, value: Any) -> Environment:
        return value if isinstance(value, Environment) else Environment.parse(str(value))

    @field_validator("assets_path", "manifest_path", "log_file", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Optional[Path]:
        if value is None or value == "":
            return None
        return Path(value) if not isinstance(value, Path) else value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in {"json", "console"}:
            raise ValueError(f"log_format must be 'json' or 'console', got {value!r}")
        return value

    @property
    def is_development(self) -> bool:
        return self.environment is Environment.DEVELOPMENT

    @property
    def resolved_manifest_path(self) -> Path:
        """Manifest location, defaulting to `manifest.json` inside the assets dir."""

        return self.manifest_path or self.assets_path / "manifest.json"

    @property
    def resolved_log_format(self) -> str:
        if self.log_format:
            return self.log_format
        return "console" if self.is_development else "json"


_ENV_VARS: Dict[str, tuple[str, ...]] = {
    "environment": ("APP_ENV", "GO_ENV"),
    "host": ("HOST",),
    "port": ("PORT",),
    "server_url": ("SERVER_URL",),
    "dev_server_url": ("DEV_SERVER_URL",),
    "assets_path": ("ASSETS_PATH",),
    "manifest_path": ("MANIFEST_PATH",),
    "assets_url": ("ASSETS_URL",),
    "entry_point": ("ENTRY_POINT",),
    "hmr": ("VITE_HMR",),
    "log_requests": ("LOG_REQUESTS",),
    "log_level": ("LOG_LEVEL",),
    "log_format": ("LOG_FORMAT",),
    "log_file": ("LOG_FILE",),
    "request_timeout": ("REQUEST_TIMEOUT",),
    "api_concurrency": ("API_CONCURRENCY",),
}

_BOOL_FIELDS = {"hmr", "log_requests"}


def load_config(
    config_path: Optional[Path | str] = None, **overrides: Any
) -> Settings:
    """
    Load settings from overrides/environment/TOML/defaults.

    Args:
        config_path: Optional explicit path to an `islands.toml` file.
        **overrides: Field values that win over every other source.

    Returns:
        Frozen Settings instance.

    Raises:
        ConfigError: if the config file is missing or any value is invalid.
    """

    raw_data = _load_toml_data(config_path)
    values: Dict[str, Any] = {}

    for name, env_vars in _ENV_VARS.items():
        if name in overrides:
            values[name] = overrides[name]
            continue
        env_var, env_value = _first_env(env_vars)
        if env_value is not None:
            values[name] = _env_bool(env_var, env_value) if name in _BOOL_FIELDS else env_value
        elif name in raw_data:
            values[name] = raw_data[name]

    unknown = set(overrides) - set(_ENV_VARS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")

    try:
        return Settings(**values)
    except ConfigError:
        raise
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _load_toml_data(config_path: Optional[Path | str]) -> Dict[str, Any]:
    """Load the `[server]` table (or the top level) of a TOML file if one resolves."""

    resolved = _resolve_config_path(config_path)
    if resolved is None:
        return {}

    if not resolved.exists():
        raise ConfigError(f"Configuration file not found: {resolved}")

    try:
        with resolved.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {resolved}: {exc}") from exc

    return dict(data.get("server", data))


def _resolve_config_path(config_path: Optional[Path | str]) -> Optional[Path]:
    """Resolve configuration path with environment fallback."""

    if config_path:
        return Path(config_path)

    env_path = os.getenv("ISLANDS_CONFIG_FILE")
    if env_path:
        return Path(env_path)

    default_path = Path("islands.toml")
    return default_path if default_path.exists() else None


def _first_env(env_vars: tuple[str, ...]) -> tuple[str, Optional[str]]:
    """Return the first environment variable that is set, with its value."""

    for env_var in env_vars:
        value = os.getenv(env_var)
        if value is not None:
            return env_var, value
    return env_vars[0], None


def _env_bool(env_var: str, value: str) -> bool:
    """Parse a boolean environment value."""

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean for {env_var}: {value}")
