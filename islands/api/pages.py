"""Server-rendered page routes.

Each page resolves the configured client entry point, builds a fresh
`PageContext`, and renders its template. Resolver and renderer errors are
left to propagate; the exception handlers in `islands.api.errors` turn
them into 500 responses.
"""

from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from islands.assets.resolver import AssetResolver
from islands.config import Settings
from islands.rendering.context import PageContext
from islands.rendering.renderer import PageRenderer
from islands.api.dependencies import get_renderer, get_resolver, get_settings

router = APIRouter(tags=["pages"])

PAGES: Dict[str, tuple[str, str]] = {
    "/": ("home.html", "React Islands Demo"),
    "/about": ("about.html", "About - React Islands"),
}


def demo_initial_data() -> Dict[str, Any]:
    """Data serialised into every page for islands to pick up on hydration."""

    return {"user": {"id": 123, "name": "John Doe"}}


def serve_page(template_name: str, title: str) -> Callable[..., HTMLResponse]:
    """Build a handler that renders `template_name` with the given title."""

    def handler(
        settings: Settings = Depends(get_settings),
        resolver: AssetResolver = Depends(get_resolver),
        renderer: PageRenderer = Depends(get_renderer),
    ) -> HTMLResponse:
        context = PageContext(
            title=title,
            environment=settings.environment,
            assets=resolver.resolve(settings.entry_point),
            preamble=resolver.preamble(),
            initial_data=demo_initial_data(),
        )
        body = renderer.render(template_name, context)

        headers = {}
        if not settings.is_development:
            headers["Cache-Control"] = "no-cache, must-revalidate"
        return HTMLResponse(content=body, headers=headers)

    handler.__name__ = f"page_{template_name.removesuffix('.html')}"
    return handler


for _path, (_template, _title) in PAGES.items():
    router.add_api_route(
        _path,
        serve_page(_template, _title),
        methods=["GET"],
        response_class=HTMLResponse,
        include_in_schema=False,
    )


__all__ = ["router", "serve_page", "demo_initial_data", "PAGES"]
