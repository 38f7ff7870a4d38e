"""
Entrypoint for the React islands server.

Startup is split in two so failures are reported before the port is
bound: `bootstrap()` loads `.env`, resolves settings and builds the app
(reading the manifest and compiling templates); only then does `main()`
hand the app to Uvicorn.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Sequence

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from islands.api.server import create_app
from islands.config import Settings, load_config
from islands.exceptions import IslandsError
from islands.observability.logging import get_logger

logger = get_logger(__name__)

EXIT_STARTUP_FAILURE = 1


def bootstrap(
    settings: Optional[Settings] = None,
    env_file: Optional[Path | str] = None,
) -> FastAPI:
    """
    Return a configured application instance.

    Raises:
        IslandsError: configuration, manifest or template failures
    """

    if settings is None:
        load_dotenv(env_file)
        settings = load_config()
    return create_app(settings)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Build the app and serve it; returns a non-zero exit status on startup failure."""

    env_file = argv[0] if argv else None
    try:
        application = bootstrap(env_file=env_file)
    except IslandsError as exc:
        logger.error("startup_failed", error_type=type(exc).__name__, error=str(exc))
        return EXIT_STARTUP_FAILURE

    settings: Settings = application.state.settings
    logger.info(
        "server_starting",
        host=settings.host,
        port=settings.port,
        environment=settings.environment.value,
    )
    uvicorn.run(
        application,
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
        timeout_keep_alive=60,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
