"""Database layer for Review Engine.

This module handles database connections, session management, and provides
the SQLAlchemy async engine configuration for PostgreSQL.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    Base: SQLAlchemy declarative base for all models.
"""

from review_engine.database.connection import get_engine, get_session_factory
from review_engine.database.models import (
    Base,
    Review,
    ReviewAudit,
    ReviewItem,
    ReviewStatus,
    Scorecard,
    ScorecardType,
    Submission,
    TimestampMixin,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "Base",
    "TimestampMixin",
    "Scorecard",
    "ScorecardType",
    "Submission",
    "Review",
    "ReviewStatus",
    "ReviewItem",
    "ReviewAudit",
]
