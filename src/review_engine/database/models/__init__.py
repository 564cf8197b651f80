"""SQLAlchemy ORM models for Review Engine.

This module defines the database schema including scorecards, submissions,
reviews with their items, comments and appeals, and the review audit log.

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from review_engine.database.models.audit import ReviewAudit
from review_engine.database.models.base import Base, TimestampMixin
from review_engine.database.models.review import (
    Appeal,
    AppealResponse,
    Review,
    ReviewItem,
    ReviewItemComment,
    ReviewItemCommentType,
    ReviewStatus,
)
from review_engine.database.models.scorecard import (
    QuestionType,
    Scorecard,
    ScorecardGroup,
    ScorecardQuestion,
    ScorecardSection,
    ScorecardType,
)
from review_engine.database.models.submission import Submission

__all__ = [
    "Base",
    "TimestampMixin",
    "Scorecard",
    "ScorecardType",
    "ScorecardGroup",
    "ScorecardSection",
    "ScorecardQuestion",
    "QuestionType",
    "Submission",
    "Review",
    "ReviewStatus",
    "ReviewItem",
    "ReviewItemComment",
    "ReviewItemCommentType",
    "Appeal",
    "AppealResponse",
    "ReviewAudit",
]
