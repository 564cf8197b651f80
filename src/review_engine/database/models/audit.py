"""Review audit model for Review Engine.

Audit rows are append-only. ``review_id`` deliberately carries no foreign
key so the history of a deleted review is retained.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from review_engine.database.models.base import Base, new_id, utcnow


class ReviewAudit(Base):
    """One recorded mutation of a review or its items.

    Attributes:
        id: String UUID primary key.
        review_id: Review the mutation applied to.
        submission_id: Submission of the review, when known.
        challenge_id: Challenge of the review, when known.
        actor_id: Caller the mutation is attributed to.
        description: ``field: old -> new`` lines joined by ``; ``.
        created_at: When the mutation was recorded.
    """

    __tablename__ = "review_audits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    review_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    submission_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
    )
    challenge_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_id: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
