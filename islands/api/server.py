"""FastAPI application factory for the islands server.

`create_app` performs all fallible initialisation before returning:
settings are validated, the asset resolver is built (reading the manifest
in production) and every template is compiled. Any failure raises
immediately, so a misconfigured process never reaches the point of
binding a port.

Usage:
    # Run with Uvicorn (factory mode)
    uvicorn islands.api.server:create_app --factory --host 0.0.0.0 --port 8080

    # Or through the bundled entrypoint
    python -m app.server.main

Endpoints:
    GET /                 Home page (home.html)
    GET /about            About page (about.html)
    GET /api/time         Current server time
    GET /api/users/{id}   Demo user
    GET /api/error-demo   Demo error envelope
    GET /health           Liveness/version
    GET /metrics          Prometheus metrics
    GET /static/...       Built assets
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from islands import __version__
from islands.api import demo, pages
from islands.api.errors import register_error_handlers
from islands.api.middleware import (
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
    ThrottleMiddleware,
    TimeoutMiddleware,
)
from islands.api.static import mount_static
from islands.assets.resolver import AssetResolver, create_resolver
from islands.config import Environment, Settings, load_config
from islands.observability.logging import configure_logging, get_logger
from islands.observability.metrics import get_metrics_content_type, get_metrics_output
from islands.rendering.renderer import PageRenderer

logger = get_logger(__name__)

STATIC_MOUNT_PATH = "/static"


def cors_origins(settings: Settings) -> list[str]:
    """Dev server origin in development, the public server URL otherwise."""

    if settings.environment is Environment.DEVELOPMENT:
        return [settings.dev_server_url.rstrip("/")]
    return [settings.server_url.rstrip("/")] if settings.server_url else []


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    logger.info(
        "server_started",
        environment=settings.environment.value,
        host=settings.host,
        port=settings.port,
        entry_point=settings.entry_point,
    )
    yield
    logger.info("server_shutdown")


def create_app(
    settings: Optional[Settings] = None,
    resolver: Optional[AssetResolver] = None,
    renderer: Optional[PageRenderer] = None,
    configure_logs: bool = True,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Resolved settings (loaded from the environment if omitted)
        resolver: Asset resolver override (built from settings if omitted)
        renderer: Page renderer override (bundled templates if omitted)
        configure_logs: Configure structlog from settings

    Raises:
        ConfigError, ManifestLoadError, TemplateLoadError: startup failures
    """

    settings = settings or load_config()
    if configure_logs:
        configure_logging(
            level=settings.log_level,
            format=settings.resolved_log_format,
            log_file=settings.log_file,
        )

    resolver = resolver or create_resolver(settings)
    renderer = renderer or PageRenderer(required_templates=[t for t, _ in pages.PAGES.values()])

    app = FastAPI(
        title="React Islands Server",
        description="Server-rendered pages with client-side islands",
        version=__version__,
        lifespan=_lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.resolver = resolver
    app.state.renderer = renderer
    app.state.started_at = datetime.now(timezone.utc)

    # add_middleware prepends, so the last one added runs first.
    app.add_middleware(ThrottleMiddleware, limit=settings.api_concurrency, path_prefix="/api")
    app.add_middleware(GZipMiddleware, minimum_size=500, compresslevel=5)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token"],
        expose_headers=["Link"],
        max_age=300,
    )
    app.add_middleware(SecurityHeadersMiddleware, environment=settings.environment)
    app.add_middleware(TimeoutMiddleware, timeout=settings.request_timeout)
    app.add_middleware(RequestContextMiddleware, log_requests=settings.log_requests)

    register_error_handlers(app)

    app.include_router(pages.router)
    app.include_router(demo.router)
    _add_service_routes(app)

    app.mount(STATIC_MOUNT_PATH, mount_static(settings.assets_path), name="static")

    return app


def _add_service_routes(app: FastAPI) -> None:
    @app.get("/health", response_class=JSONResponse)
    async def health() -> Dict[str, Any]:
        """Liveness check with build version."""
        return {
            "status": "ok",
            "version": __version__,
            "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(content=get_metrics_output(), media_type=get_metrics_content_type())


__all__ = ["create_app", "cors_origins", "STATIC_MOUNT_PATH"]
