"""FastAPI route definitions for the Review Engine API."""

from __future__ import annotations

from review_engine.web.routes.health import (
    HealthResponse,
    ReadinessResponse,
    create_health_router,
)
from review_engine.web.routes.review_items import create_review_items_router
from review_engine.web.routes.reviews import create_reviews_router

__all__ = [
    # Health
    "HealthResponse",
    "ReadinessResponse",
    "create_health_router",
    # Reviews
    "create_reviews_router",
    "create_review_items_router",
]
