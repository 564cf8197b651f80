"""Scorecard score aggregation.

Scores are derived from a review's items by walking the scorecard tree:

    question value -> weighted within its section
    section subtotal -> weighted within its group
    group subtotal -> weighted within the scorecard

Each question answer becomes a fraction in [0, 1]. Unanswered questions are
dropped from both numerator and denominator, so the remaining weights are
re-normalized; sections and groups with no answered question drop out the
same way. Where all sibling weights are zero, siblings weigh equally. The
aggregate fraction is projected onto [min_score, max_score].
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from review_engine.database.models.review import ReviewItem
from review_engine.database.models.scorecard import (
    QuestionType,
    Scorecard,
    ScorecardQuestion,
)

YES_ANSWERS = frozenset({"yes", "y", "true", "1"})
NO_ANSWERS = frozenset({"no", "n", "false", "0"})


@dataclass(frozen=True)
class ScoreResult:
    """Initial and final aggregate scores; None when nothing is answered."""

    initial_score: float | None
    final_score: float | None


def answer_fraction(question: ScorecardQuestion, answer: str | None) -> float | None:
    """Map an answer onto [0, 1], or None when it carries no value.

    Scale and test case answers interpolate within the question's scale
    bounds and are clamped. Yes/no answers map to the bounds themselves.
    """
    if answer is None:
        return None
    text = str(answer).strip()
    if not text:
        return None

    if question.type == QuestionType.YES_NO:
        lowered = text.lower()
        if lowered in YES_ANSWERS:
            return 1.0
        if lowered in NO_ANSWERS:
            return 0.0
        return None

    try:
        value = float(text)
    except ValueError:
        return None

    low = question.scale_min if question.scale_min is not None else 0
    high = question.scale_max if question.scale_max is not None else 100
    if high <= low:
        return 1.0 if value >= high else 0.0
    return min(1.0, max(0.0, (value - low) / (high - low)))


def _weighted_mean(parts: list[tuple[float, float]]) -> float | None:
    """Mean of (weight, value) pairs with equal weights when all are zero."""
    if not parts:
        return None
    total_weight = sum(weight for weight, _ in parts)
    if total_weight <= 0:
        return sum(value for _, value in parts) / len(parts)
    return sum(weight * value for weight, value in parts) / total_weight


def score_fraction(scorecard: Scorecard, answers: Mapping[str, str | None]) -> float | None:
    """Aggregate fraction in [0, 1] for answers keyed by question id."""
    group_parts: list[tuple[float, float]] = []
    for group in scorecard.groups:
        section_parts: list[tuple[float, float]] = []
        for section in group.sections:
            question_parts: list[tuple[float, float]] = []
            for question in section.questions:
                fraction = answer_fraction(question, answers.get(question.id))
                if fraction is not None:
                    question_parts.append((max(question.weight, 0.0), fraction))
            section_value = _weighted_mean(question_parts)
            if section_value is not None:
                section_parts.append((max(section.weight, 0.0), section_value))
        group_value = _weighted_mean(section_parts)
        if group_value is not None:
            group_parts.append((max(group.weight, 0.0), group_value))
    return _weighted_mean(group_parts)


def compute_score(scorecard: Scorecard, answers: Mapping[str, str | None]) -> float | None:
    """Score in [min_score, max_score] rounded to two decimals."""
    fraction = score_fraction(scorecard, answers)
    if fraction is None:
        return None
    low, high = scorecard.min_score, scorecard.max_score
    score = round(low + fraction * (high - low), 2)
    return min(max(score, low), high)


def compute_scores(scorecard: Scorecard, items: Iterable[ReviewItem]) -> ScoreResult:
    """Initial and final scores for a review's items.

    The final score uses each item's final answer, falling back to its
    initial answer when no revision was made.
    """
    items = list(items)
    initial_answers = {item.scorecard_question_id: item.initial_answer for item in items}
    final_answers = {
        item.scorecard_question_id: (
            item.final_answer if item.final_answer is not None else item.initial_answer
        )
        for item in items
    }
    return ScoreResult(
        initial_score=compute_score(scorecard, initial_answers),
        final_score=compute_score(scorecard, final_answers),
    )


def question_index(scorecard: Scorecard) -> dict[str, ScorecardQuestion]:
    """All questions of a scorecard keyed by id."""
    return {
        question.id: question
        for group in scorecard.groups
        for section in group.sections
        for question in section.questions
    }
