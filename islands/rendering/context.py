"""
Per-request page data handed to the renderer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from markupsafe import Markup

from islands.assets.models import ResolvedAssets
from islands.config import Environment


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class PageContext:
    """
    Everything a page template may read.

    A fresh instance is built for every request; nothing in it is shared
    with other requests.
    """

    title: str
    environment: Environment
    assets: ResolvedAssets
    initial_data: Mapping[str, Any] = field(default_factory=dict)
    current_time: datetime = field(default_factory=_utcnow)
    preamble: Markup = field(default_factory=Markup)
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_development(self) -> bool:
        return self.environment is Environment.DEVELOPMENT

    def template_vars(self) -> Dict[str, Any]:
        """Flatten the context into the variables templates see."""

        variables: Dict[str, Any] = dict(self.extra)
        variables.update(
            title=self.title,
            environment=self.environment.value,
            is_development=self.is_development,
            current_time=self.current_time,
            assets=self.assets,
            asset_tags=self.assets.to_html(),
            preamble=self.preamble,
            initial_data=dict(self.initial_data),
        )
        return variables


__all__ = ["PageContext"]
