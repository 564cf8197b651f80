"""Scorecard query functions for Review Engine.

Provides lookups of scorecards with their full group/section/question tree
and a helper to create a scorecard tree from nested dictionaries.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.database.models.scorecard import (
    QuestionType,
    Scorecard,
    ScorecardGroup,
    ScorecardQuestion,
    ScorecardSection,
    ScorecardType,
)

logger = structlog.get_logger(__name__)


async def get_scorecard(session: AsyncSession, scorecard_id: str) -> Scorecard | None:
    """Retrieve a scorecard with its groups, sections and questions.

    Args:
        session: Active async database session.
        scorecard_id: Scorecard identifier.

    Returns:
        The Scorecard if found, None otherwise.
    """
    result = await session.execute(select(Scorecard).where(Scorecard.id == scorecard_id))
    return result.scalar_one_or_none()


async def get_scorecards(
    session: AsyncSession, scorecard_ids: list[str]
) -> dict[str, Scorecard]:
    """Retrieve several scorecards keyed by id."""
    if not scorecard_ids:
        return {}
    result = await session.execute(
        select(Scorecard).where(Scorecard.id.in_(set(scorecard_ids)))
    )
    return {scorecard.id: scorecard for scorecard in result.scalars().all()}


async def create_scorecard(
    session: AsyncSession,
    name: str,
    type: ScorecardType,
    groups: list[dict[str, Any]],
    min_score: float = 0.0,
    max_score: float = 100.0,
    minimum_passing_score: float = 50.0,
    scorecard_id: str | None = None,
) -> Scorecard:
    """Create a scorecard and its whole tree.

    Each group dictionary holds ``name``, ``weight`` and ``sections``; each
    section holds ``name``, ``weight`` and ``questions``; each question holds
    ``description``, ``type``, ``weight`` and optional ``scale_min`` /
    ``scale_max``. An ``id`` key on any node is used as its primary key.

    Args:
        session: Active async database session.
        name: Scorecard display name.
        type: Review kind the scorecard drives.
        groups: Nested group definitions.
        min_score: Lowest attainable score.
        max_score: Highest attainable score.
        minimum_passing_score: Passing threshold.
        scorecard_id: Primary key to use; generated when omitted.

    Returns:
        The newly created Scorecard.
    """
    scorecard = Scorecard(
        name=name,
        type=type,
        min_score=min_score,
        max_score=max_score,
        minimum_passing_score=minimum_passing_score,
        groups=[],
    )
    if scorecard_id is not None:
        scorecard.id = scorecard_id
    for group_order, group_data in enumerate(groups):
        group = ScorecardGroup(
            name=group_data["name"],
            weight=group_data.get("weight", 0.0),
            sort_order=group_order,
            sections=[],
        )
        if "id" in group_data:
            group.id = group_data["id"]
        for section_order, section_data in enumerate(group_data.get("sections", [])):
            section = ScorecardSection(
                name=section_data["name"],
                weight=section_data.get("weight", 0.0),
                sort_order=section_order,
                questions=[],
            )
            if "id" in section_data:
                section.id = section_data["id"]
            for question_order, question_data in enumerate(
                section_data.get("questions", [])
            ):
                question = ScorecardQuestion(
                    description=question_data.get("description", ""),
                    type=QuestionType(question_data["type"]),
                    weight=question_data.get("weight", 0.0),
                    scale_min=question_data.get("scale_min"),
                    scale_max=question_data.get("scale_max"),
                    sort_order=question_order,
                )
                if "id" in question_data:
                    question.id = question_data["id"]
                section.questions.append(question)
            group.sections.append(section)
        scorecard.groups.append(group)

    session.add(scorecard)
    await session.flush()

    logger.info(
        "scorecard_created",
        scorecard_id=scorecard.id,
        type=type.value,
        group_count=len(scorecard.groups),
    )
    return scorecard


async def get_question_scorecard_id(
    session: AsyncSession, question_id: str
) -> str | None:
    """Return the id of the scorecard a question belongs to, if it exists."""
    result = await session.execute(
        select(ScorecardGroup.scorecard_id)
        .join(ScorecardSection, ScorecardSection.group_id == ScorecardGroup.id)
        .join(ScorecardQuestion, ScorecardQuestion.section_id == ScorecardSection.id)
        .where(ScorecardQuestion.id == question_id)
    )
    return result.scalar_one_or_none()
