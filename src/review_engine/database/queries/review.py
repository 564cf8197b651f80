"""Review CRUD query functions for Review Engine.

Provides async functions for creating, reading, updating, listing and
deleting Review records. Items are loaded eagerly with their comment and
appeal threads.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.database.models.review import (
    Review,
    ReviewItem,
    ReviewItemComment,
    ReviewItemCommentType,
    ReviewStatus,
)
from review_engine.database.models.submission import Submission

logger = structlog.get_logger(__name__)

REVIEW_COLUMNS = frozenset(
    {
        "status",
        "committed",
        "initial_score",
        "final_score",
        "review_date",
        "review_metadata",
        "type_id",
        "updated_by",
    }
)


def build_review_item(
    scorecard_question_id: str,
    initial_answer: str | None = None,
    final_answer: str | None = None,
    manager_comment: str | None = None,
    comments: list[dict[str, Any]] | None = None,
    resource_id: str | None = None,
    created_by: str | None = None,
) -> ReviewItem:
    """Construct an unsaved ReviewItem with its comments.

    Args:
        scorecard_question_id: Question the item answers.
        initial_answer: Reviewer's answer.
        final_answer: Revised answer, if any.
        manager_comment: Copilot annotation.
        comments: Dictionaries with ``content`` and optional ``type``.
        resource_id: Resource the comments are attributed to.
        created_by: Actor creating the item.

    Returns:
        A transient ReviewItem.
    """
    item = ReviewItem(
        scorecard_question_id=scorecard_question_id,
        initial_answer=initial_answer,
        final_answer=final_answer,
        manager_comment=manager_comment,
        created_by=created_by,
        updated_by=created_by,
        comments=[],
    )
    for order, comment in enumerate(comments or []):
        item.comments.append(
            ReviewItemComment(
                resource_id=comment.get("resource_id") or resource_id or "",
                content=comment["content"],
                type=ReviewItemCommentType(comment.get("type", "COMMENT")),
                sort_order=comment.get("sort_order", order),
                appeal=None,
                created_by=created_by,
                updated_by=created_by,
            )
        )
    return item


async def create_review(
    session: AsyncSession,
    submission_id: str,
    scorecard_id: str,
    resource_id: str,
    phase_id: str,
    status: ReviewStatus = ReviewStatus.PENDING,
    committed: bool = False,
    type_id: str | None = None,
    initial_score: float | None = None,
    final_score: float | None = None,
    review_date: datetime | None = None,
    review_metadata: dict[str, Any] | None = None,
    created_by: str | None = None,
    items: list[ReviewItem] | None = None,
) -> Review:
    """Create a new review with its items.

    Args:
        session: Active async database session.
        submission_id: Reviewed submission.
        scorecard_id: Scorecard used for grading.
        resource_id: Reviewer's resource.
        phase_id: Phase the review belongs to.
        status: Initial lifecycle state.
        committed: Whether the review is committed.
        type_id: Optional review type identifier.
        initial_score: Aggregate of initial answers.
        final_score: Aggregate of final answers.
        review_date: Completion timestamp.
        review_metadata: Opaque metadata.
        created_by: Actor creating the review.
        items: Transient items built with build_review_item.

    Returns:
        The newly created Review.
    """
    review = Review(
        submission_id=submission_id,
        scorecard_id=scorecard_id,
        resource_id=resource_id,
        phase_id=phase_id,
        status=status,
        committed=committed,
        type_id=type_id,
        initial_score=initial_score,
        final_score=final_score,
        review_date=review_date,
        review_metadata=review_metadata,
        created_by=created_by,
        updated_by=created_by,
        review_items=list(items or []),
    )
    session.add(review)
    await session.flush()

    logger.info(
        "review_created",
        review_id=review.id,
        submission_id=submission_id,
        resource_id=resource_id,
        status=status.value,
        item_count=len(review.review_items),
    )
    return review


async def get_review(session: AsyncSession, review_id: str) -> Review | None:
    """Retrieve a review with its items and submission.

    Args:
        session: Active async database session.
        review_id: Review identifier.

    Returns:
        The Review if found, None otherwise.
    """
    result = await session.execute(select(Review).where(Review.id == review_id))
    return result.unique().scalar_one_or_none()


async def find_review(
    session: AsyncSession,
    submission_id: str,
    scorecard_id: str,
    resource_id: str,
) -> Review | None:
    """Find the review for a (submission, scorecard, resource) triple."""
    result = await session.execute(
        select(Review).where(
            Review.submission_id == submission_id,
            Review.scorecard_id == scorecard_id,
            Review.resource_id == resource_id,
        )
    )
    return result.unique().scalar_one_or_none()


async def list_reviews(
    session: AsyncSession,
    challenge_id: str | None = None,
    submission_id: str | None = None,
    scorecard_id: str | None = None,
    resource_id: str | None = None,
    status: ReviewStatus | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Review], int]:
    """List reviews matching the given filters.

    Args:
        session: Active async database session.
        challenge_id: Restrict to submissions of this challenge.
        submission_id: Restrict to one submission.
        scorecard_id: Restrict to one scorecard.
        resource_id: Restrict to one reviewer resource.
        status: Restrict to one lifecycle state.
        limit: Maximum number of rows to return.
        offset: Number of rows to skip.

    Returns:
        Tuple of (page of reviews ordered by creation time, total matches).
    """
    stmt = select(Review)
    count_stmt = select(func.count(Review.id))
    if challenge_id is not None:
        stmt = stmt.join(Submission, Submission.id == Review.submission_id).where(
            Submission.challenge_id == challenge_id
        )
        count_stmt = count_stmt.join(
            Submission, Submission.id == Review.submission_id
        ).where(Submission.challenge_id == challenge_id)

    filters = []
    if submission_id is not None:
        filters.append(Review.submission_id == submission_id)
    if scorecard_id is not None:
        filters.append(Review.scorecard_id == scorecard_id)
    if resource_id is not None:
        filters.append(Review.resource_id == resource_id)
    if status is not None:
        filters.append(Review.status == status)
    if filters:
        stmt = stmt.where(*filters)
        count_stmt = count_stmt.where(*filters)

    stmt = stmt.order_by(Review.created_at.asc(), Review.id.asc()).limit(limit).offset(offset)

    result = await session.execute(stmt)
    total = await session.scalar(count_stmt)
    return list(result.unique().scalars().all()), int(total or 0)


async def update_review(
    session: AsyncSession, review: Review, changes: dict[str, Any]
) -> Review:
    """Apply column changes to a review.

    Only mutable columns may be changed; identity columns (resource,
    scorecard, submission, phase) are rejected.

    Args:
        session: Active async database session.
        review: Loaded review to modify.
        changes: Column name to new value.

    Returns:
        The updated Review.

    Raises:
        ValueError: If a change targets a column that is not mutable.
    """
    unknown = set(changes) - REVIEW_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update review columns: {sorted(unknown)}")

    for column, value in changes.items():
        setattr(review, column, value)
    await session.flush()

    logger.info(
        "review_updated",
        review_id=review.id,
        fields=sorted(changes),
    )
    return review


async def delete_review(session: AsyncSession, review: Review) -> None:
    """Delete a review and, by cascade, its items and threads."""
    review_id = review.id
    await session.delete(review)
    await session.flush()

    logger.info("review_deleted", review_id=review_id)
