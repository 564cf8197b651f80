"""Submission query functions for Review Engine."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.database.models.submission import Submission

logger = structlog.get_logger(__name__)


async def get_submission(
    session: AsyncSession, submission_id: str
) -> Submission | None:
    """Retrieve a submission by id."""
    result = await session.execute(
        select(Submission).where(Submission.id == submission_id)
    )
    return result.scalar_one_or_none()


async def create_submission(
    session: AsyncSession,
    challenge_id: str,
    member_id: str,
    submitted_date: datetime | None = None,
    submission_id: str | None = None,
) -> Submission:
    """Record a submission received from the submission service.

    Args:
        session: Active async database session.
        challenge_id: Challenge the submission belongs to.
        member_id: Submitting member.
        submitted_date: When the submission was received.
        submission_id: Upstream identifier; generated when omitted.

    Returns:
        The newly created Submission.
    """
    submission = Submission(
        challenge_id=challenge_id,
        member_id=member_id,
        submitted_date=submitted_date,
    )
    if submission_id is not None:
        submission.id = submission_id
    session.add(submission)
    await session.flush()

    logger.info(
        "submission_recorded",
        submission_id=submission.id,
        challenge_id=challenge_id,
    )
    return submission


async def list_member_submission_ids(
    session: AsyncSession, challenge_id: str, member_id: str
) -> set[str]:
    """Return ids of a member's submissions on a challenge."""
    result = await session.execute(
        select(Submission.id).where(
            Submission.challenge_id == challenge_id,
            Submission.member_id == member_id,
        )
    )
    return set(result.scalars().all())
