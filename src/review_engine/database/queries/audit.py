"""Review audit query functions for Review Engine.

Audit rows are append-only: there is no update or delete function.
"""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.database.models.audit import ReviewAudit

logger = structlog.get_logger(__name__)


async def create_audit_entry(
    session: AsyncSession,
    review_id: str,
    actor_id: str,
    description: str,
    submission_id: str | None = None,
    challenge_id: str | None = None,
) -> ReviewAudit:
    """Append an audit entry for a review mutation.

    Args:
        session: Active async database session.
        review_id: Review that changed.
        actor_id: Caller the change is attributed to.
        description: Serialized field diff.
        submission_id: Review's submission.
        challenge_id: Review's challenge.

    Returns:
        The persisted ReviewAudit row.
    """
    entry = ReviewAudit(
        review_id=review_id,
        submission_id=submission_id,
        challenge_id=challenge_id,
        actor_id=actor_id,
        description=description,
    )
    session.add(entry)
    await session.flush()

    logger.debug(
        "review_audit_recorded",
        review_id=review_id,
        actor_id=actor_id,
    )
    return entry


async def list_audit_entries(
    session: AsyncSession, review_id: str
) -> list[ReviewAudit]:
    """List a review's audit entries, oldest first."""
    result = await session.execute(
        select(ReviewAudit)
        .where(ReviewAudit.review_id == review_id)
        .order_by(ReviewAudit.created_at.asc())
    )
    return list(result.scalars().all())
