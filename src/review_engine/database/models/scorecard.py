"""Scorecard models for Review Engine.

A scorecard is a weighted tree: groups contain sections, sections contain
questions. Weights are relative within their parent and are normalized
when scores are aggregated, so they need not sum to 100.
"""

from __future__ import annotations

import enum

from sqlalchemy import Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from review_engine.database.models.base import Base, TimestampMixin


class ScorecardType(enum.Enum):
    """Kind of review a scorecard is used for.

    The type decides which challenge phase a review attaches to and which
    resource roles may author it.
    """

    REVIEW = "REVIEW"
    ITERATIVE_REVIEW = "ITERATIVE_REVIEW"
    SCREENING = "SCREENING"
    CHECKPOINT_SCREENING = "CHECKPOINT_SCREENING"
    CHECKPOINT_REVIEW = "CHECKPOINT_REVIEW"
    APPROVAL = "APPROVAL"
    POST_MORTEM = "POST_MORTEM"
    SPECIFICATION_REVIEW = "SPECIFICATION_REVIEW"


class QuestionType(enum.Enum):
    """Answer type of a scorecard question."""

    SCALE = "SCALE"
    YES_NO = "YES_NO"
    TEST_CASE = "TEST_CASE"


class Scorecard(TimestampMixin, Base):
    """A weighted grading template.

    Attributes:
        name: Display name.
        type: Review kind this scorecard drives.
        min_score: Lowest attainable aggregate score.
        max_score: Highest attainable aggregate score.
        minimum_passing_score: Score a submission needs to pass.
        groups: Ordered top-level groups.
    """

    __tablename__ = "scorecards"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[ScorecardType] = mapped_column(nullable=False)
    min_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    max_score: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)
    minimum_passing_score: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=50.0,
    )

    groups: Mapped[list["ScorecardGroup"]] = relationship(
        "ScorecardGroup",
        back_populates="scorecard",
        order_by="ScorecardGroup.sort_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ScorecardGroup(TimestampMixin, Base):
    """A weighted group of sections within a scorecard."""

    __tablename__ = "scorecard_groups"

    scorecard_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scorecards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    scorecard: Mapped[Scorecard] = relationship(
        "Scorecard",
        back_populates="groups",
    )
    sections: Mapped[list["ScorecardSection"]] = relationship(
        "ScorecardSection",
        back_populates="group",
        order_by="ScorecardSection.sort_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ScorecardSection(TimestampMixin, Base):
    """A weighted section of questions within a group."""

    __tablename__ = "scorecard_sections"

    group_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scorecard_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    group: Mapped[ScorecardGroup] = relationship(
        "ScorecardGroup",
        back_populates="sections",
    )
    questions: Mapped[list["ScorecardQuestion"]] = relationship(
        "ScorecardQuestion",
        back_populates="section",
        order_by="ScorecardQuestion.sort_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ScorecardQuestion(TimestampMixin, Base):
    """A single gradable question.

    Attributes:
        section_id: Owning section.
        description: Question text.
        type: Answer type (scale, yes/no, test case).
        weight: Relative weight within the section.
        scale_min: Lower bound for scale and test case answers.
        scale_max: Upper bound for scale and test case answers.
        sort_order: Display order within the section.
    """

    __tablename__ = "scorecard_questions"

    section_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scorecard_sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[QuestionType] = mapped_column(nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    scale_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scale_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    section: Mapped[ScorecardSection] = relationship(
        "ScorecardSection",
        back_populates="questions",
    )
