"""Field-level audit diffs for review mutations.

A review is reduced to a plain snapshot (top-level fields plus the tracked
fields of each item keyed by scorecard question id). Two snapshots are
compared into a list of FieldChange records; only ``format_changes``
turns them into the text stored on the audit row:

    status: PENDING -> COMPLETED; reviewItem[scorecardQuestionId=q1].finalAnswer: 3 -> 4
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from review_engine.database.models.review import Review

REVIEW_FIELDS: tuple[tuple[str, str], ...] = (
    ("status", "status"),
    ("committed", "committed"),
    ("finalScore", "final_score"),
    ("initialScore", "initial_score"),
    ("reviewDate", "review_date"),
    ("metadata", "review_metadata"),
    ("typeId", "type_id"),
    ("scorecardId", "scorecard_id"),
)

ITEM_FIELDS: tuple[tuple[str, str], ...] = (
    ("initialAnswer", "initial_answer"),
    ("finalAnswer", "final_answer"),
    ("managerComment", "manager_comment"),
)


@dataclass(frozen=True)
class FieldChange:
    field: str
    old: Any
    new: Any


@dataclass
class ReviewSnapshot:
    """Detached copy of the audited state of a review."""

    fields: dict[str, Any] = field(default_factory=dict)
    items: dict[str, dict[str, Any]] = field(default_factory=dict)


def snapshot_review(review: Review) -> ReviewSnapshot:
    """Capture the audited fields of a loaded review."""
    snapshot = ReviewSnapshot()
    for label, attribute in REVIEW_FIELDS:
        snapshot.fields[label] = copy.deepcopy(getattr(review, attribute))
    for item in review.review_items:
        snapshot.items[item.scorecard_question_id] = {
            label: getattr(item, attribute) for label, attribute in ITEM_FIELDS
        }
    return snapshot


def item_field_name(question_id: str, label: str) -> str:
    return f"reviewItem[scorecardQuestionId={question_id}].{label}"


def diff_snapshots(
    before: ReviewSnapshot | None,
    after: ReviewSnapshot | None,
    always_include: Iterable[tuple[str, str]] = (),
) -> list[FieldChange]:
    """Compare two snapshots.

    A missing side (creation or deletion) compares as all-null.

    Args:
        before: State before the mutation.
        after: State after the mutation.
        always_include: (question id, item field label) pairs reported
            even when their value is unchanged.

    Returns:
        Changes in a stable order: review fields, then items by question id.
    """
    before = before or ReviewSnapshot()
    after = after or ReviewSnapshot()
    forced = set(always_include)
    changes: list[FieldChange] = []

    for label, _ in REVIEW_FIELDS:
        old, new = before.fields.get(label), after.fields.get(label)
        if old != new:
            changes.append(FieldChange(label, old, new))

    for question_id in sorted(set(before.items) | set(after.items)):
        old_item = before.items.get(question_id, {})
        new_item = after.items.get(question_id, {})
        for label, _ in ITEM_FIELDS:
            old, new = old_item.get(label), new_item.get(label)
            if old != new or (question_id, label) in forced:
                changes.append(FieldChange(item_field_name(question_id, label), old, new))

    return changes


def format_value(value: Any) -> str:
    """Render a value for the audit description."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def format_changes(changes: Iterable[FieldChange]) -> str:
    """Serialize changes as ``field: old -> new`` joined by ``; ``."""
    return "; ".join(
        f"{change.field}: {format_value(change.old)} -> {format_value(change.new)}"
        for change in changes
    )
