"""
Server bootstrap for the React islands server.

`bootstrap()` returns a fully initialised FastAPI application. Everything
that can fail (configuration, manifest, templates) fails inside it, before
any socket is opened.
"""

from __future__ import annotations

from app.server.main import bootstrap, main

__all__ = ["bootstrap", "main"]
