"""Translation of per-request core errors into HTTP responses.

Both `EntryNotFoundError` and `TemplateExecutionError` become a 500. The
full error is always logged; the response body carries the detail only in
development. Production clients get a generic message so manifest contents
and filesystem paths never leak.
"""

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from islands.config import Environment
from islands.exceptions import AssetError, RenderError
from islands.observability.logging import get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Internal Server Error"


def _error_response(request: Request, label: str, exc: Exception) -> PlainTextResponse:
    environment: Environment = request.app.state.settings.environment
    logger.error(
        "page_error",
        error_type=type(exc).__name__,
        error=str(exc),
        path=request.url.path,
    )
    if environment is Environment.DEVELOPMENT:
        body = f"{label}: {exc}"
    else:
        body = GENERIC_ERROR_MESSAGE
    return PlainTextResponse(body, status_code=500)


async def asset_error_handler(request: Request, exc: AssetError) -> PlainTextResponse:
    return _error_response(request, "Asset Error", exc)


async def render_error_handler(request: Request, exc: RenderError) -> PlainTextResponse:
    return _error_response(request, "Template Error", exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AssetError, asset_error_handler)
    app.add_exception_handler(RenderError, render_error_handler)


__all__ = [
    "GENERIC_ERROR_MESSAGE",
    "asset_error_handler",
    "render_error_handler",
    "register_error_handlers",
]
