"""
React islands server.

Serves server-rendered HTML pages that load their client-side islands from
either a Vite dev server (development) or a build manifest (production).
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
