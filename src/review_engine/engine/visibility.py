"""Read visibility and masking of review results.

``decide_visibility`` is a pure function of the viewer, their resources on
the challenge, the challenge snapshot and the review being read:

    Visible  - return the review as stored
    Masked   - return it with scores nulled and items removed
    Hidden   - do not return it at all

Single reads raise on Masked and Hidden; list reads mask or drop rows.
Release conditions only ever turn on as a challenge progresses (phases
open, then end; the challenge completes), so a review that has been
visible to its submitter does not become masked again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from review_engine.engine.resolver import find_phase_by_id, normalize_phase_name
from review_engine.engine.roles import (
    Actor,
    Capability,
    Permission,
    capabilities_of,
    has_permission,
)
from review_engine.engine.schemas import ReviewOut
from review_engine.integrations.snapshots import (
    ChallengeSnapshot,
    PhaseSnapshot,
    ResourceSnapshot,
)

SCREENING_PHASES = frozenset({"screening", "checkpointscreening"})
APPEALS_PHASES = frozenset({"appeals", "appealsresponse"})
REVIEW_PHASE = "review"
ITERATIVE_REVIEW_PHASE = "iterativereview"


@dataclass(frozen=True)
class Visible:
    pass


@dataclass(frozen=True)
class Masked:
    code: str
    message: str


@dataclass(frozen=True)
class Hidden:
    code: str
    message: str


Visibility = Union[Visible, Masked, Hidden]


def _review_phase_closed(phase: PhaseSnapshot) -> bool:
    name = normalize_phase_name(phase.name)
    if name == ITERATIVE_REVIEW_PHASE:
        return not phase.is_open
    return name == REVIEW_PHASE and phase.has_ended


def submitter_results_released(challenge: ChallengeSnapshot) -> bool:
    """Whether submitters may see scores on their own submissions.

    Results are released once the challenge is completed or cancelled,
    while an appeals phase is open or after one has ended, or, for
    challenges without appeals phases, once the review phase has closed.
    A closed Iterative Review phase counts as soon as it is not open; a
    plain Review phase must also carry an end time.
    """
    if challenge.is_final:
        return True

    appeals = [p for p in challenge.phases if normalize_phase_name(p.name) in APPEALS_PHASES]
    if any(p.is_open or p.has_ended for p in appeals):
        return True
    if appeals:
        return False

    return any(_review_phase_closed(p) for p in challenge.phases)


def decide_visibility(
    actor: Actor,
    viewer_resources: list[ResourceSnapshot],
    challenge: ChallengeSnapshot,
    review_resource_id: str,
    review_phase_id: str | None,
    submission_member_id: str | None,
) -> Visibility:
    """Decide how a review is shown to a viewer.

    Args:
        actor: The viewer.
        viewer_resources: The viewer's resources on the review's challenge.
        challenge: Challenge snapshot.
        review_resource_id: Resource that authored the review.
        review_phase_id: Phase the review belongs to.
        submission_member_id: Member who owns the reviewed submission.

    Returns:
        Visible, Masked or Hidden.
    """
    if actor.is_privileged:
        return Visible()
    if any(has_permission(r, Permission.MANAGE_REVIEWS) for r in viewer_resources):
        return Visible()

    phase = find_phase_by_id(challenge, review_phase_id) if review_phase_id else None

    if any(has_permission(r, Permission.AUTHOR_REVIEWS) for r in viewer_resources):
        if any(r.id == review_resource_id for r in viewer_resources):
            return Visible()
        if challenge.is_final:
            return Visible()
        if (
            phase is not None
            and normalize_phase_name(phase.name) in SCREENING_PHASES
            and Capability.REVIEWER in capabilities_of(viewer_resources)
        ):
            return Visible()
        return Masked(
            "FORBIDDEN_REVIEW_ACCESS_REVIEWER_SELF",
            "Reviewers can only see their own reviews until the challenge completes",
        )

    if actor.user_id and submission_member_id == str(actor.user_id):
        if submitter_results_released(challenge) or challenge.is_first2finish:
            return Visible()
        # The review's own phase is over, e.g. screening while review is open
        if phase is not None and phase.has_ended:
            return Visible()
        return Masked(
            "FORBIDDEN_REVIEW_ACCESS_PHASE",
            "Review results are not available in the current phase",
        )

    if any(has_permission(r, Permission.VIEW_OWN_RESULTS) for r in viewer_resources):
        return Hidden(
            "FORBIDDEN_REVIEW_ACCESS_OWN_ONLY",
            "Submitters can only see reviews of their own submissions",
        )

    return Hidden(
        "FORBIDDEN_REVIEW_ACCESS",
        "The requester has no access to reviews of this challenge",
    )


def mask_review(review: ReviewOut) -> ReviewOut:
    """Copy of a review without scores, answers or appeals.

    Reviewer and submitter identity is retained.
    """
    return review.model_copy(
        update={
            "initial_score": None,
            "final_score": None,
            "review_items": [],
            "appeals": [],
        }
    )
