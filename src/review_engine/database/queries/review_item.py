"""Review item query functions for Review Engine.

Items are always created and deleted through their parent's collection so
the loaded review reflects the change before scores are recomputed.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.database.models.review import Review, ReviewItem

logger = structlog.get_logger(__name__)

ITEM_COLUMNS = frozenset(
    {
        "scorecard_question_id",
        "initial_answer",
        "final_answer",
        "manager_comment",
        "updated_by",
    }
)


async def get_review_item(session: AsyncSession, item_id: str) -> ReviewItem | None:
    """Retrieve a review item together with its parent review."""
    result = await session.execute(select(ReviewItem).where(ReviewItem.id == item_id))
    return result.unique().scalar_one_or_none()


async def create_review_item(
    session: AsyncSession, review: Review, item: ReviewItem
) -> ReviewItem:
    """Attach a new item to a review.

    Args:
        session: Active async database session.
        review: Loaded parent review.
        item: Transient item built with ``build_review_item``.

    Returns:
        The persisted ReviewItem.
    """
    review.review_items.append(item)
    await session.flush()

    logger.info(
        "review_item_created",
        review_id=review.id,
        review_item_id=item.id,
        scorecard_question_id=item.scorecard_question_id,
    )
    return item


async def update_review_item(
    session: AsyncSession, item: ReviewItem, changes: dict[str, Any]
) -> ReviewItem:
    """Apply column changes to a review item.

    Raises:
        ValueError: If a change targets a column that is not mutable.
    """
    unknown = set(changes) - ITEM_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update review item columns: {sorted(unknown)}")

    for column, value in changes.items():
        setattr(item, column, value)
    await session.flush()

    logger.info(
        "review_item_updated",
        review_item_id=item.id,
        fields=sorted(changes),
    )
    return item


async def delete_review_item(
    session: AsyncSession, review: Review, item: ReviewItem
) -> None:
    """Remove an item from its review."""
    item_id = item.id
    review.review_items.remove(item)
    await session.flush()

    logger.info("review_item_deleted", review_id=review.id, review_item_id=item_id)
