"""Unit tests for review visibility and masking."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from review_engine.database.models.review import ReviewStatus
from review_engine.engine.roles import Actor
from review_engine.engine.schemas import ReviewItemOut, ReviewOut
from review_engine.engine.visibility import (
    Hidden,
    Masked,
    Visible,
    decide_visibility,
    mask_review,
    submitter_results_released,
)
from review_engine.integrations.snapshots import (
    ChallengeSnapshot,
    PhaseSnapshot,
    ResourceSnapshot,
)

ENDED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def phase(name: str, is_open: bool = False, ended: bool = False) -> PhaseSnapshot:
    return PhaseSnapshot(
        id=f"p-{name.lower().replace(' ', '-')}",
        name=name,
        is_open=is_open,
        actual_end_time=ENDED if ended else None,
    )


def challenge(*phases: PhaseSnapshot, status: str = "ACTIVE") -> ChallengeSnapshot:
    return ChallengeSnapshot(id="c1", status=status, phases=list(phases))


def resource(resource_id: str, member_id: str, role_name: str) -> ResourceSnapshot:
    return ResourceSnapshot(id=resource_id, challenge_id="c1", member_id=member_id, role_name=role_name)


REVIEWER = Actor(user_id="100")
REVIEWER_RESOURCES = [resource("r-100", "100", "Reviewer")]
SUBMITTER = Actor(user_id="500")
SUBMITTER_RESOURCES = [resource("r-500", "500", "Submitter")]
IN_REVIEW = challenge(phase("Review", is_open=True), phase("Appeals"))


class TestResultsReleased:
    """Test when submitters may see their own results."""

    def test_final_challenge(self) -> None:
        assert submitter_results_released(challenge(status="COMPLETED"))

    def test_review_open(self) -> None:
        assert not submitter_results_released(IN_REVIEW)

    @pytest.mark.parametrize("name", ["Appeals", "Appeals Response"])
    def test_appeals_open(self, name: str) -> None:
        assert submitter_results_released(challenge(phase("Review", ended=True), phase(name, is_open=True)))

    def test_appeals_ended(self) -> None:
        assert submitter_results_released(challenge(phase("Appeals", ended=True)))

    def test_review_ended_without_appeals_phases(self) -> None:
        assert submitter_results_released(challenge(phase("Iterative Review", ended=True)))

    def test_review_ended_but_appeals_pending(self) -> None:
        assert not submitter_results_released(challenge(phase("Review", ended=True), phase("Appeals")))

    def test_iterative_review_closed_without_appeals_phases(self) -> None:
        """Test a closed Iterative Review releases results without an end time."""
        closed = challenge(phase("Submission"), phase("Iterative Review", is_open=False))
        assert submitter_results_released(closed)

    def test_iterative_review_open(self) -> None:
        assert not submitter_results_released(challenge(phase("Iterative Review", is_open=True)))

    def test_review_closed_without_end_time(self) -> None:
        """Test a plain Review phase needs an end time before results are released."""
        assert not submitter_results_released(challenge(phase("Submission"), phase("Review")))


class TestDecideVisibility:
    """Test visibility of a review by viewer role and phase."""

    def test_admin_sees_everything(self) -> None:
        actor = Actor(user_id="1", roles=("administrator",))
        assert decide_visibility(actor, [], IN_REVIEW, "r-100", "p-review", "500") == Visible()

    def test_copilot_sees_everything(self) -> None:
        resources = [resource("r-300", "300", "Copilot")]
        result = decide_visibility(Actor(user_id="300"), resources, IN_REVIEW, "r-100", "p-review", "500")
        assert result == Visible()

    def test_reviewer_sees_own_review(self) -> None:
        result = decide_visibility(REVIEWER, REVIEWER_RESOURCES, IN_REVIEW, "r-100", "p-review", "500")
        assert result == Visible()

    def test_reviewer_masked_from_peer_review(self) -> None:
        result = decide_visibility(REVIEWER, REVIEWER_RESOURCES, IN_REVIEW, "r-200", "p-review", "500")
        assert isinstance(result, Masked)
        assert result.code == "FORBIDDEN_REVIEW_ACCESS_REVIEWER_SELF"

    def test_reviewer_sees_peer_screening(self) -> None:
        screening = challenge(phase("Screening", is_open=True), phase("Review"))
        result = decide_visibility(REVIEWER, REVIEWER_RESOURCES, screening, "r-200", "p-screening", "500")
        assert result == Visible()

    def test_reviewer_sees_peers_after_completion(self) -> None:
        done = challenge(phase("Review", ended=True), status="COMPLETED")
        result = decide_visibility(REVIEWER, REVIEWER_RESOURCES, done, "r-200", "p-review", "500")
        assert result == Visible()

    def test_submitter_masked_before_release(self) -> None:
        result = decide_visibility(SUBMITTER, SUBMITTER_RESOURCES, IN_REVIEW, "r-100", "p-review", "500")
        assert isinstance(result, Masked)
        assert result.code == "FORBIDDEN_REVIEW_ACCESS_PHASE"

    def test_submitter_sees_own_after_release(self) -> None:
        appeals = challenge(phase("Review", ended=True), phase("Appeals", is_open=True))
        result = decide_visibility(SUBMITTER, SUBMITTER_RESOURCES, appeals, "r-100", "p-review", "500")
        assert result == Visible()

    def test_submitter_hidden_from_other_submissions(self) -> None:
        appeals = challenge(phase("Appeals", is_open=True))
        result = decide_visibility(SUBMITTER, SUBMITTER_RESOURCES, appeals, "r-100", "p-review", "600")
        assert isinstance(result, Hidden)
        assert result.code == "FORBIDDEN_REVIEW_ACCESS_OWN_ONLY"

    def test_non_participant_hidden(self) -> None:
        result = decide_visibility(Actor(user_id="999"), [], IN_REVIEW, "r-100", "p-review", "500")
        assert isinstance(result, Hidden)
        assert result.code == "FORBIDDEN_REVIEW_ACCESS"

    def test_screener_masked_from_peer_screening(self) -> None:
        screening = challenge(phase("Screening", is_open=True), phase("Review"))
        screener = [resource("r-150", "150", "Screener")]
        result = decide_visibility(Actor(user_id="150"), screener, screening, "r-151", "p-screening", "500")
        assert isinstance(result, Masked)
        assert result.code == "FORBIDDEN_REVIEW_ACCESS_REVIEWER_SELF"

    def test_submitter_sees_own_after_iterative_review_closed(self) -> None:
        closed = challenge(phase("Submission", ended=True), phase("Iterative Review"))
        result = decide_visibility(
            SUBMITTER, SUBMITTER_RESOURCES, closed, "r-100", "p-iterative-review", "500"
        )
        assert result == Visible()

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": {"name": "First2Finish"}},
            {"type": "Topgear Task"},
            {"type": "Task", "legacy": {"subTrack": "FIRST_2_FINISH"}},
        ],
    )
    def test_submitter_sees_own_on_first2finish(self, payload: dict) -> None:
        f2f = ChallengeSnapshot.model_validate(
            {
                "id": "c1",
                "status": "ACTIVE",
                "phases": [{"id": "p-review", "name": "Review", "isOpen": True}],
                **payload,
            }
        )
        assert f2f.is_first2finish
        result = decide_visibility(SUBMITTER, SUBMITTER_RESOURCES, f2f, "r-100", "p-review", "500")
        assert result == Visible()

    def test_first2finish_keeps_other_submissions_hidden(self) -> None:
        f2f = ChallengeSnapshot(id="c1", status="ACTIVE", type="First2Finish")
        result = decide_visibility(SUBMITTER, SUBMITTER_RESOURCES, f2f, "r-100", "p-review", "600")
        assert isinstance(result, Hidden)

    def test_submitter_sees_own_review_of_ended_phase(self) -> None:
        """Test a finished screening result is shown while review is still open."""
        in_review = challenge(
            phase("Screening", ended=True), phase("Review", is_open=True), phase("Appeals")
        )
        result = decide_visibility(SUBMITTER, SUBMITTER_RESOURCES, in_review, "r-150", "p-screening", "500")
        assert result == Visible()

        result = decide_visibility(SUBMITTER, SUBMITTER_RESOURCES, in_review, "r-100", "p-review", "500")
        assert isinstance(result, Masked)


class TestMaskReview:
    """Test masking keeps identity and drops results."""

    def test_mask(self) -> None:
        review = ReviewOut(
            id="rev1",
            resource_id="r-100",
            phase_id="p-review",
            submission_id="s1",
            scorecard_id="sc1",
            status=ReviewStatus.COMPLETED,
            committed=True,
            initial_score=90.0,
            final_score=92.5,
            reviewer_handle="reviewer1",
            review_items=[
                ReviewItemOut(id="i1", review_id="rev1", scorecard_question_id="q1", initial_answer="9")
            ],
        )
        masked = mask_review(review)

        assert masked.initial_score is None
        assert masked.final_score is None
        assert masked.review_items == []
        assert masked.appeals == []
        assert masked.reviewer_handle == "reviewer1"
        assert masked.status == ReviewStatus.COMPLETED
        assert review.initial_score == 90.0
