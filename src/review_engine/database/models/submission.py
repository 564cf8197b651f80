"""Submission model for Review Engine.

Submissions are owned by the upstream submission service; this table keeps
the identifying columns reviews are joined against.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from review_engine.database.models.base import Base, TimestampMixin


class Submission(TimestampMixin, Base):
    """A member's entry into a challenge.

    Attributes:
        challenge_id: Challenge the submission belongs to.
        member_id: Member who submitted.
        submitted_date: When the submission was received.
    """

    __tablename__ = "submissions"

    challenge_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    member_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    submitted_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
