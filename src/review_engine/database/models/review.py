"""Review models for Review Engine.

Defines the Review table and its item, comment and appeal children. A
review is one reviewer's graded pass over one submission against one
scorecard; it is unique per (submission, scorecard, resource) and holds
one item per scorecard question.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from review_engine.database.models.base import Base, TimestampMixin


class ReviewStatus(enum.Enum):
    """Lifecycle states of a review.

    States:
        PENDING: Created, reviewer has not started.
        IN_PROGRESS: Reviewer is filling in answers.
        COMPLETED: Reviewer finished; completion event has fired.
        DRAFT: Saved without being submitted.
        SUBMITTED: Submitted for approval.
        APPROVED: Approved by a copilot or manager.
        REJECTED: Rejected by a copilot or manager.
    """

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ReviewItemCommentType(enum.Enum):
    """Kind of commentary attached to a review item."""

    COMMENT = "COMMENT"
    REQUIRED = "REQUIRED"
    RECOMMENDED = "RECOMMENDED"
    AGGREGATION_COMMENT = "AGGREGATION_COMMENT"
    SUBMITTER_COMMENT = "SUBMITTER_COMMENT"
    MANAGER_COMMENT = "MANAGER_COMMENT"
    SPECIFICATION_REVIEW_COMMENT = "SPECIFICATION_REVIEW_COMMENT"


class Review(TimestampMixin, Base):
    """A reviewer's scored pass over a submission.

    Attributes:
        resource_id: The reviewer's resource on the challenge (immutable).
        phase_id: Challenge phase the review belongs to.
        submission_id: Reviewed submission (immutable).
        scorecard_id: Scorecard used for grading (immutable).
        type_id: Optional review type identifier.
        status: Current lifecycle state.
        committed: Whether the reviewer committed the review.
        initial_score: Aggregate of initial answers.
        final_score: Aggregate of final answers (after appeals).
        review_date: When the review was completed.
        review_metadata: Opaque metadata stored in the ``metadata`` column.
        created_by: Actor that created the review.
        updated_by: Actor that last changed the review.
        review_items: One item per answered scorecard question.
        submission: The reviewed submission.
    """

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint(
            "submission_id",
            "scorecard_id",
            "resource_id",
            name="uq_reviews_submission_scorecard_resource",
        ),
    )

    resource_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    phase_id: Mapped[str] = mapped_column(Text, nullable=False)
    submission_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("submissions.id"),
        nullable=False,
        index=True,
    )
    scorecard_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scorecards.id"),
        nullable=False,
    )
    type_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ReviewStatus] = mapped_column(
        default=ReviewStatus.PENDING,
        nullable=False,
    )
    committed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    initial_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    review_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    review_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )
    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    review_items: Mapped[list["ReviewItem"]] = relationship(
        "ReviewItem",
        back_populates="review",
        order_by="ReviewItem.created_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    submission: Mapped["Submission"] = relationship(  # noqa: F821
        "Submission",
        lazy="selectin",
    )


class ReviewItem(TimestampMixin, Base):
    """An answer to one scorecard question within a review.

    Attributes:
        review_id: Parent review.
        scorecard_question_id: Answered question; must belong to the
            review's scorecard.
        initial_answer: Reviewer's original answer.
        final_answer: Answer after appeals, if revised.
        manager_comment: Copilot-only annotation.
        comments: Ordered commentary thread.
    """

    __tablename__ = "review_items"
    __table_args__ = (
        UniqueConstraint(
            "review_id",
            "scorecard_question_id",
            name="uq_review_items_review_question",
        ),
    )

    review_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reviews.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    scorecard_question_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scorecard_questions.id"),
        nullable=False,
    )
    initial_answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    final_answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[str | None] = mapped_column(Text, nullable=True)

    review: Mapped[Review] = relationship(
        "Review",
        back_populates="review_items",
        lazy="joined",
    )
    comments: Mapped[list["ReviewItemComment"]] = relationship(
        "ReviewItemComment",
        back_populates="review_item",
        order_by="ReviewItemComment.sort_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ReviewItemComment(TimestampMixin, Base):
    """A comment on a review item, optionally carrying an appeal."""

    __tablename__ = "review_item_comments"

    review_item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("review_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resource_id: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[ReviewItemCommentType] = mapped_column(
        default=ReviewItemCommentType.COMMENT,
        nullable=False,
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[str | None] = mapped_column(Text, nullable=True)

    review_item: Mapped[ReviewItem] = relationship(
        "ReviewItem",
        back_populates="comments",
    )
    appeal: Mapped["Appeal | None"] = relationship(
        "Appeal",
        back_populates="comment",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Appeal(TimestampMixin, Base):
    """A submitter's appeal against a review item comment."""

    __tablename__ = "appeals"

    review_item_comment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("review_item_comments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    resource_id: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[str | None] = mapped_column(Text, nullable=True)

    comment: Mapped[ReviewItemComment] = relationship(
        "ReviewItemComment",
        back_populates="appeal",
    )
    response: Mapped["AppealResponse | None"] = relationship(
        "AppealResponse",
        back_populates="appeal",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class AppealResponse(TimestampMixin, Base):
    """A reviewer's answer to an appeal."""

    __tablename__ = "appeal_responses"

    appeal_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("appeals.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    resource_id: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[str | None] = mapped_column(Text, nullable=True)

    appeal: Mapped[Appeal] = relationship(
        "Appeal",
        back_populates="response",
    )
