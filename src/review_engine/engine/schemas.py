"""Request and response models for review operations.

Models accept both snake_case and camelCase field names and serialize with
camelCase aliases, matching the wire format of the surrounding services.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from review_engine.database.models.review import ReviewItemCommentType, ReviewStatus


class _Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Requests


class ReviewItemCommentInput(_Schema):
    content: str = Field(..., min_length=1)
    type: ReviewItemCommentType = ReviewItemCommentType.COMMENT


class ReviewItemInput(_Schema):
    """Answer to one scorecard question inside a review payload."""

    scorecard_question_id: str
    initial_answer: str | None = None
    final_answer: str | None = None
    manager_comment: str | None = None
    review_item_comments: list[ReviewItemCommentInput] = Field(default_factory=list)


class ReviewCreate(_Schema):
    """Payload for creating a review.

    ``resource_id`` and ``phase_id`` are inferred from the requester's
    resources and the scorecard type when omitted.
    """

    submission_id: str
    scorecard_id: str
    resource_id: str | None = None
    phase_id: str | None = None
    type_id: str | None = None
    status: ReviewStatus = ReviewStatus.PENDING
    committed: bool = False
    initial_score: float | None = None
    final_score: float | None = None
    review_date: datetime | None = None
    metadata: dict[str, Any] | None = None
    review_items: list[ReviewItemInput] = Field(default_factory=list)


class ReviewUpdate(_Schema):
    """Partial review update.

    Identity fields are declared so their presence can be detected and
    rejected; they are never applied.
    """

    resource_id: str | None = None
    scorecard_id: str | None = None
    submission_id: str | None = None
    phase_id: str | None = None
    type_id: str | None = None
    status: ReviewStatus | None = None
    committed: bool | None = None
    initial_score: float | None = None
    final_score: float | None = None
    review_date: datetime | None = None
    metadata: dict[str, Any] | None = None
    review_items: list[ReviewItemInput] | None = None

    def requested_changes(self) -> dict[str, Any]:
        """Explicitly set fields keyed by model column name."""
        changes: dict[str, Any] = {}
        for name in self.model_fields_set:
            key = "review_metadata" if name == "metadata" else name
            changes[key] = getattr(self, name)
        return changes


class ReviewItemCreate(ReviewItemInput):
    """Payload for adding an item to an existing review."""

    review_id: str


class ReviewItemUpdate(_Schema):
    """Partial review item update."""

    review_id: str | None = None
    scorecard_question_id: str | None = None
    initial_answer: str | None = None
    final_answer: str | None = None
    manager_comment: str | None = None

    def requested_changes(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "review_id"
        }


# Responses


class AppealResponseOut(_Schema):
    id: str
    appeal_id: str
    resource_id: str
    content: str
    success: bool
    created_at: datetime | None = None


class AppealOut(_Schema):
    id: str
    review_item_comment_id: str
    resource_id: str
    content: str
    created_at: datetime | None = None
    appeal_response: AppealResponseOut | None = Field(
        default=None,
        validation_alias=AliasChoices("response", "appealResponse", "appeal_response"),
    )


class ReviewItemCommentOut(_Schema):
    id: str
    resource_id: str
    content: str
    type: ReviewItemCommentType
    sort_order: int = 0
    created_at: datetime | None = None
    appeal: AppealOut | None = None


class ReviewItemOut(_Schema):
    """A review item as returned to callers."""

    id: str
    review_id: str
    scorecard_question_id: str
    initial_answer: str | None = None
    final_answer: str | None = None
    manager_comment: str | None = None
    created_at: datetime | None = None
    created_by: str | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None
    review_item_comments: list[ReviewItemCommentOut] = Field(
        default_factory=list,
        validation_alias=AliasChoices("comments", "reviewItemComments", "review_item_comments"),
    )


class ReviewOut(_Schema):
    """A review as returned to callers, enriched with identity data."""

    id: str
    resource_id: str
    phase_id: str
    phase_name: str | None = None
    submission_id: str
    scorecard_id: str
    type_id: str | None = None
    status: ReviewStatus
    committed: bool
    initial_score: float | None = None
    final_score: float | None = None
    review_date: datetime | None = None
    metadata: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("review_metadata", "metadata"),
    )
    created_at: datetime | None = None
    created_by: str | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None
    review_items: list[ReviewItemOut] = Field(default_factory=list)
    appeals: list[AppealOut] = Field(default_factory=list)
    reviewer_handle: str | None = None
    reviewer_max_rating: int | None = None
    submitter_handle: str | None = None
    submitter_max_rating: int | None = None


class ReviewPage(_Schema):
    data: list[ReviewOut]
    total: int
    limit: int
    offset: int


class AuditEntryOut(_Schema):
    id: str
    review_id: str
    submission_id: str | None = None
    challenge_id: str | None = None
    actor_id: str
    description: str
    created_at: datetime
