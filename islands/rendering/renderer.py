"""
Jinja2-backed page renderer.

Templates ship inside the package (``islands/templates``) and are compiled
once when the renderer is constructed. A missing or broken template is a
`TemplateLoadError` at that point, so the server fails before it starts
accepting requests. Errors raised while a template executes are wrapped in
`TemplateExecutionError`; deciding what the client sees is left to the HTTP
layer.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional

from jinja2 import (
    BaseLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    Undefined,
    Template,
    TemplateError,
    select_autoescape,
)

from islands.exceptions import TemplateExecutionError, TemplateLoadError
from islands.observability.logging import get_logger
from islands.observability.metrics import increment_counter, track_duration
from islands.rendering.context import PageContext
from islands.rendering.helpers import TEMPLATE_FILTERS, TEMPLATE_GLOBALS

logger = get_logger(__name__)

DEFAULT_TEMPLATE_PACKAGE = "islands"
DEFAULT_TEMPLATE_DIR = "templates"


class PageRenderer:
    """
    Render named page templates against a `PageContext`.

    Args:
        template_dir: Load templates from this directory instead of the
            bundled package templates.
        required_templates: Names that must exist; checked at construction.
        strict: Use `StrictUndefined`, so a template referencing a missing
            variable fails instead of rendering an empty string.
    """

    def __init__(
        self,
        template_dir: Optional[Path | str] = None,
        required_templates: Iterable[str] = (),
        strict: bool = True,
    ):
        self.template_dir = Path(template_dir) if template_dir is not None else None
        self._env = Environment(
            loader=self._build_loader(),
            autoescape=select_autoescape(["html", "htm", "xml"]),
            undefined=StrictUndefined if strict else Undefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters.update(TEMPLATE_FILTERS)
        self._env.globals.update(TEMPLATE_GLOBALS)
        self._templates = self._compile_all()

        missing = sorted(set(required_templates) - set(self._templates))
        if missing:
            raise TemplateLoadError(f"Required templates not found: {missing}")

        logger.info("templates_loaded", count=len(self._templates), templates=self.template_names)

    @property
    def template_names(self) -> list[str]:
        return sorted(self._templates)

    def has_template(self, template_name: str) -> bool:
        return template_name in self._templates

    def render(self, template_name: str, context: PageContext) -> str:
        """
        Render a whole page.

        Raises:
            TemplateExecutionError: unknown template or failure during execution
        """

        template = self._get(template_name)
        with track_duration("template_render_duration_seconds", labels={"template": template_name}):
            try:
                return template.render(context.template_vars())
            except Exception as exc:
                raise self._execution_error(template_name, exc) from exc

    def stream(self, template_name: str, context: PageContext) -> Iterator[str]:
        """
        Render a page incrementally, yielding chunks as the template produces them.

        The template is looked up eagerly; execution errors surface while
        iterating.
        """

        template = self._get(template_name)
        return self._generate(template, template_name, context)

    def _generate(self, template: Template, template_name: str, context: PageContext) -> Iterator[str]:
        try:
            yield from template.generate(context.template_vars())
        except Exception as exc:
            raise self._execution_error(template_name, exc) from exc

    def _get(self, template_name: str) -> Template:
        template = self._templates.get(template_name)
        if template is None:
            increment_counter("render_errors_total", labels={"template": template_name})
            raise TemplateExecutionError(
                f"Unknown template: {template_name}", template_name=template_name
            )
        return template

    def _execution_error(self, template_name: str, exc: Exception) -> TemplateExecutionError:
        increment_counter("render_errors_total", labels={"template": template_name})
        return TemplateExecutionError(
            f"Error executing template {template_name}: {exc}", template_name=template_name
        )

    def _build_loader(self) -> BaseLoader:
        if self.template_dir is not None:
            if not self.template_dir.is_dir():
                raise TemplateLoadError(f"Template directory not found: {self.template_dir}")
            return FileSystemLoader(str(self.template_dir))
        try:
            return PackageLoader(DEFAULT_TEMPLATE_PACKAGE, DEFAULT_TEMPLATE_DIR)
        except ValueError as exc:
            raise TemplateLoadError(f"Bundled templates not found: {exc}") from exc

    def _compile_all(self) -> Dict[str, Template]:
        names = [name for name in self._env.list_templates() if name.endswith(".html")]
        if not names:
            raise TemplateLoadError("No templates found")

        templates: Dict[str, Template] = {}
        for name in names:
            try:
                templates[name] = self._env.get_template(name)
            except TemplateError as exc:
                raise TemplateLoadError(
                    f"Failed to load template {name}: {exc}", template_name=name
                ) from exc
        return templates


__all__ = ["PageRenderer"]
