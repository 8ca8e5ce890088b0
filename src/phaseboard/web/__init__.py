"""Web interface for Phaseboard.

FastAPI application exposing the project board over HTTP, plus health
endpoints.
"""

from __future__ import annotations

from phaseboard.web.app import create_app
from phaseboard.web.middleware import RequestLoggingMiddleware

__all__ = [
    "create_app",
    "RequestLoggingMiddleware",
]
