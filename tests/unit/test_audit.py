"""Unit tests for review audit diffs."""

from __future__ import annotations

from datetime import datetime, timezone

from review_engine.database.models.review import Review, ReviewItem, ReviewStatus
from review_engine.engine.audit import (
    FieldChange,
    ReviewSnapshot,
    diff_snapshots,
    format_changes,
    format_value,
    item_field_name,
    snapshot_review,
)


def make_review(**overrides: object) -> Review:
    values: dict[str, object] = {
        "status": ReviewStatus.PENDING,
        "committed": False,
        "initial_score": None,
        "final_score": None,
        "review_date": None,
        "review_metadata": {"source": "ui"},
        "type_id": "t1",
        "scorecard_id": "sc1",
        "review_items": [],
    }
    values.update(overrides)
    return Review(**values)


class TestSnapshot:
    """Test snapshots are detached from the review."""

    def test_metadata_is_copied(self) -> None:
        review = make_review()
        snapshot = snapshot_review(review)
        review.review_metadata["source"] = "api"
        assert snapshot.fields["metadata"] == {"source": "ui"}

    def test_items_keyed_by_question(self) -> None:
        review = make_review(
            review_items=[ReviewItem(scorecard_question_id="q1", initial_answer="3")]
        )
        snapshot = snapshot_review(review)
        assert snapshot.items == {
            "q1": {"initialAnswer": "3", "finalAnswer": None, "managerComment": None}
        }


class TestDiff:
    """Test field-level comparison of snapshots."""

    def test_no_changes(self) -> None:
        snapshot = snapshot_review(make_review())
        assert diff_snapshots(snapshot, snapshot_review(make_review())) == []

    def test_review_field_change(self) -> None:
        before = snapshot_review(make_review())
        after = snapshot_review(make_review(status=ReviewStatus.COMPLETED, committed=True))
        assert diff_snapshots(before, after) == [
            FieldChange("status", ReviewStatus.PENDING, ReviewStatus.COMPLETED),
            FieldChange("committed", False, True),
        ]

    def test_item_changes_sorted_by_question(self) -> None:
        before = ReviewSnapshot(items={"q2": {"initialAnswer": "1"}})
        after = ReviewSnapshot(items={"q1": {"initialAnswer": "5"}, "q2": {"initialAnswer": "2"}})
        fields = [change.field for change in diff_snapshots(before, after)]
        assert fields == [
            "reviewItem[scorecardQuestionId=q1].initialAnswer",
            "reviewItem[scorecardQuestionId=q2].initialAnswer",
        ]

    def test_creation_compares_against_empty(self) -> None:
        after = snapshot_review(make_review(status=ReviewStatus.IN_PROGRESS))
        changes = {change.field: change for change in diff_snapshots(None, after)}
        assert changes["status"].old is None
        assert changes["status"].new == ReviewStatus.IN_PROGRESS
        assert "initialScore" not in changes

    def test_deletion_compares_against_empty(self) -> None:
        before = snapshot_review(make_review())
        changes = {change.field: change for change in diff_snapshots(before, None)}
        assert changes["scorecardId"].new is None

    def test_forced_field_is_reported_unchanged(self) -> None:
        snapshot = ReviewSnapshot(items={"q1": {"managerComment": "same"}})
        changes = diff_snapshots(snapshot, snapshot, always_include=[("q1", "managerComment")])
        assert changes == [FieldChange(item_field_name("q1", "managerComment"), "same", "same")]


class TestFormat:
    """Test rendering of the stored description."""

    def test_format_value(self) -> None:
        assert format_value(None) == "null"
        assert format_value(True) == "true"
        assert format_value(ReviewStatus.COMPLETED) == "COMPLETED"
        assert format_value(85.5) == "85.5"
        assert format_value({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'
        assert (
            format_value(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))
            == "2026-03-01T12:00:00+00:00"
        )

    def test_format_changes(self) -> None:
        changes = [
            FieldChange("status", ReviewStatus.PENDING, ReviewStatus.COMPLETED),
            FieldChange(item_field_name("q1", "finalAnswer"), "3", "4"),
        ]
        assert format_changes(changes) == (
            "status: PENDING -> COMPLETED; "
            "reviewItem[scorecardQuestionId=q1].finalAnswer: 3 -> 4"
        )
