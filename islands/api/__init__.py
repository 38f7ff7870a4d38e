"""HTTP layer for the islands server.

Pages, demo API, health/metrics endpoints, middleware and static assets,
assembled by `create_app`.
"""

from islands.api.server import create_app

__all__ = ["create_app"]
