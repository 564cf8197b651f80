"""Review completion events.

A completion event fires exactly once per transition of a review into
COMPLETED, on create or update. It is published after the review mutation
has been committed; a failed publish is logged and never rolls the
mutation back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from review_engine.config import EventsConfig
from review_engine.database.models.review import Review, ReviewStatus
from review_engine.errors import DownstreamError
from review_engine.integrations.event_bus import EventBusClient
from review_engine.logging import get_logger

logger = get_logger(__name__)


def is_completion_transition(
    before: ReviewStatus | None, after: ReviewStatus
) -> bool:
    """True when a review enters COMPLETED (``before`` is None on create)."""
    return after == ReviewStatus.COMPLETED and before != ReviewStatus.COMPLETED


@dataclass
class ReviewCompletedPayload:
    """Body of the review completed event."""

    review_id: str
    challenge_id: str
    submission_id: str
    phase_id: str
    scorecard_id: str
    reviewer_resource_id: str
    reviewer_handle: str | None
    reviewer_member_id: str | None
    submitter_handle: str | None
    submitter_member_id: str | None
    completed_at: datetime
    initial_score: float | None

    @classmethod
    def from_review(
        cls,
        review: Review,
        challenge_id: str,
        reviewer_handle: str | None = None,
        reviewer_member_id: str | None = None,
        submitter_handle: str | None = None,
        submitter_member_id: str | None = None,
    ) -> ReviewCompletedPayload:
        """Assemble the payload; completion time is reviewDate, else updatedAt."""
        return cls(
            review_id=review.id,
            challenge_id=challenge_id,
            submission_id=review.submission_id,
            phase_id=review.phase_id,
            scorecard_id=review.scorecard_id,
            reviewer_resource_id=review.resource_id,
            reviewer_handle=reviewer_handle,
            reviewer_member_id=reviewer_member_id,
            submitter_handle=submitter_handle,
            submitter_member_id=submitter_member_id,
            completed_at=review.review_date or review.updated_at,
            initial_score=review.initial_score,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert payload to dictionary for JSON serialization."""
        return {
            "challengeId": self.challenge_id,
            "submissionId": self.submission_id,
            "phaseId": self.phase_id,
            "reviewId": self.review_id,
            "scorecardId": self.scorecard_id,
            "reviewerResourceId": self.reviewer_resource_id,
            "reviewerHandle": self.reviewer_handle,
            "reviewerMemberId": self.reviewer_member_id,
            "submitterHandle": self.submitter_handle,
            "submitterMemberId": self.submitter_member_id,
            "completedAt": self.completed_at.isoformat(),
            "initialScore": self.initial_score,
        }


class CompletionPublisher:
    """Publishes review completed events on the configured topic."""

    def __init__(self, config: EventsConfig, bus: EventBusClient | None) -> None:
        self.config = config
        self.bus = bus
        self.logger = logger.bind(component="completion_publisher")

    async def publish(self, payload: ReviewCompletedPayload) -> bool:
        """Publish a completion event.

        Returns True if published, False if disabled or the bus failed.
        """
        if not self.config.enabled or self.bus is None:
            self.logger.debug("review_completed_event_disabled", review_id=payload.review_id)
            return False

        try:
            await self.bus.publish(self.config.review_completed_topic, payload.to_dict())
        except DownstreamError as e:
            self.logger.error(
                "review_completed_event_failed",
                review_id=payload.review_id,
                topic=self.config.review_completed_topic,
                error=e.message,
            )
            return False

        self.logger.info(
            "review_completed_event_published",
            review_id=payload.review_id,
            challenge_id=payload.challenge_id,
        )
        return True
