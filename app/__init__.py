"""
Deployment entrypoints for the React islands server.

* `app/server/` - Process bootstrap: environment loading, fail-fast
  startup, and the Uvicorn runner.
* The application itself lives in the `islands` package.
"""

from islands import __version__

__all__ = ["__version__"]
