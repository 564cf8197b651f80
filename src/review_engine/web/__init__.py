"""HTTP interface for Review Engine.

A thin FastAPI surface over the ReviewService. Caller identity arrives in
gateway headers; engine errors are mapped onto status codes in one place.
"""

from __future__ import annotations

from review_engine.web.app import create_app
from review_engine.web.middleware import RequestLoggingMiddleware

__all__ = [
    "create_app",
    "RequestLoggingMiddleware",
]
