"""HTTP middleware for the islands server.

Order of execution for an inbound request (outermost first, as wired in
`islands.api.server.create_app`):

1. RequestContextMiddleware - correlation ID, request log line, metrics
2. TimeoutMiddleware - 504 once the per-request time limit passes
3. SecurityHeadersMiddleware - nosniff/frame/XSS headers and CSP
4. CORS and gzip (Starlette's own middleware)
5. ThrottleMiddleware - caps concurrent /api requests, 429 beyond that
"""

import asyncio
import time
from typing import Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from islands.config import Environment
from islands.observability.logging import (
    clear_correlation_id,
    get_logger,
    set_correlation_id,
)
from islands.observability.metrics import increment_counter, record_histogram

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline';"
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation ID, log it, and record metrics."""

    def __init__(self, app: ASGIApp, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = set_correlation_id(request.headers.get(REQUEST_ID_HEADER))
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = correlation_id
            return response
        finally:
            duration = time.perf_counter() - start_time
            route = _route_label(request)
            increment_counter(
                "http_requests_total",
                labels={"method": request.method, "route": route, "status": str(status_code)},
            )
            record_histogram("http_request_duration_seconds", duration, labels={"route": route})
            if self.log_requests:
                logger.info(
                    "http_request",
                    method=request.method,
                    path=request.url.path,
                    status=status_code,
                    duration_ms=round(duration * 1000, 2),
                    client=request.client.host if request.client else None,
                )
            clear_correlation_id()


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Abort requests that run longer than `timeout` seconds with a 504."""

    def __init__(self, app: ASGIApp, timeout: float = 30.0):
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("request_timeout", path=request.url.path, timeout_seconds=self.timeout)
            return PlainTextResponse("Gateway Timeout", status_code=504)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add browser hardening headers; CSP only outside development."""

    def __init__(self, app: ASGIApp, environment: Environment = Environment.PRODUCTION):
        super().__init__(app)
        self.environment = environment

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        if self.environment is not Environment.DEVELOPMENT:
            response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
        return response


class ThrottleMiddleware(BaseHTTPMiddleware):
    """
    Limit the number of requests under `path_prefix` processed at once.

    Requests over the limit are rejected immediately with 429 rather than
    queued. The counter is only touched from the event loop, so no lock is
    needed.
    """

    def __init__(self, app: ASGIApp, limit: int = 100, path_prefix: str = "/api"):
        super().__init__(app)
        self.limit = limit
        self.path_prefix = path_prefix
        self.in_flight = 0

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not _path_matches(request.url.path, self.path_prefix):
            return await call_next(request)

        if self.in_flight >= self.limit:
            logger.warning("request_throttled", path=request.url.path, limit=self.limit)
            return JSONResponse(
                {"success": False, "error": "Server capacity exceeded."},
                status_code=429,
            )

        self.in_flight += 1
        try:
            return await call_next(request)
        finally:
            self.in_flight -= 1


def _path_matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def _route_label(request: Request) -> str:
    """Use the route template (not the raw path) to keep metric cardinality bounded."""

    route = request.scope.get("route")
    path: Optional[str] = getattr(route, "path", None)
    return path or "unmatched"


__all__ = [
    "RequestContextMiddleware",
    "TimeoutMiddleware",
    "SecurityHeadersMiddleware",
    "ThrottleMiddleware",
    "REQUEST_ID_HEADER",
    "CONTENT_SECURITY_POLICY",
]
