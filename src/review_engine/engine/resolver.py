"""Resource and phase resolution for new reviews.

Given a challenge and the scorecard type of a new review, work out which
challenge phase the review belongs to and which of the requester's
resources authors it.
"""

from __future__ import annotations

from dataclasses import dataclass

from review_engine.database.models.scorecard import ScorecardType
from review_engine.engine.roles import (
    Actor,
    Permission,
    has_permission,
    normalize_role_name,
)
from review_engine.engine.scope import RequestScope
from review_engine.errors import ForbiddenError, InvalidRequestError, NotFoundError
from review_engine.integrations.snapshots import (
    ChallengeSnapshot,
    PhaseSnapshot,
    ResourceSnapshot,
)
from review_engine.logging import get_logger

logger = get_logger(__name__)

FALLBACK_PHASE_NAME = "Iterative Review"

# Every ScorecardType must be a key in both tables
PHASE_NAMES: dict[ScorecardType, str] = {
    ScorecardType.REVIEW: "Review",
    ScorecardType.ITERATIVE_REVIEW: "Iterative Review",
    ScorecardType.SCREENING: "Screening",
    ScorecardType.CHECKPOINT_SCREENING: "Checkpoint Screening",
    ScorecardType.CHECKPOINT_REVIEW: "Checkpoint Review",
    ScorecardType.APPROVAL: "Approval",
    ScorecardType.POST_MORTEM: "Post-Mortem",
    ScorecardType.SPECIFICATION_REVIEW: "Specification Review",
}

ROLE_PRIORITY: dict[ScorecardType, tuple[str, ...]] = {
    ScorecardType.REVIEW: ("reviewer",),
    ScorecardType.ITERATIVE_REVIEW: ("iterative reviewer", "reviewer"),
    ScorecardType.SCREENING: ("primary screener", "screener", "reviewer"),
    ScorecardType.CHECKPOINT_SCREENING: ("checkpoint screener", "screener"),
    ScorecardType.CHECKPOINT_REVIEW: ("checkpoint reviewer", "reviewer"),
    ScorecardType.APPROVAL: ("approver",),
    ScorecardType.POST_MORTEM: ("post-mortem reviewer", "reviewer", "copilot"),
    ScorecardType.SPECIFICATION_REVIEW: ("specification reviewer", "reviewer"),
}


def normalize_phase_name(name: str | None) -> str:
    """Comparable form of a phase name ("Post-Mortem" == "post mortem")."""
    return "".join(
        ch for ch in (name or "").lower() if not ch.isspace() and ch not in "-_"
    )


def find_phase(challenge: ChallengeSnapshot, name: str) -> PhaseSnapshot | None:
    """First phase of the challenge whose name matches."""
    target = normalize_phase_name(name)
    for phase in challenge.phases:
        if normalize_phase_name(phase.name) == target:
            return phase
    return None


def find_phase_by_id(challenge: ChallengeSnapshot, phase_id: str) -> PhaseSnapshot | None:
    for phase in challenge.phases:
        if phase.matches_id(phase_id):
            return phase
    return None


@dataclass(frozen=True)
class ReviewTarget:
    """Where a new review attaches: its phase and authoring resource."""

    phase: PhaseSnapshot
    resource: ResourceSnapshot


def resolve_phase(
    challenge: ChallengeSnapshot,
    scorecard_type: ScorecardType,
    phase_id: str | None = None,
    memo: dict[tuple[str, str], PhaseSnapshot | None] | None = None,
) -> PhaseSnapshot:
    """Resolve the phase a review of the given scorecard type belongs to.

    An explicit ``phase_id`` must name a phase of the challenge and wins.
    Otherwise the canonical phase for the scorecard type is used, falling
    back to "Iterative Review".

    Args:
        challenge: Challenge snapshot.
        scorecard_type: Type of the review's scorecard.
        phase_id: Phase requested by the caller, if any.
        memo: Request-scoped cache keyed by (challenge id, phase name).

    Returns:
        The resolved phase.

    Raises:
        InvalidRequestError: ``REVIEW_PHASE_NOT_FOUND`` when no phase matches.
    """
    if phase_id:
        phase = find_phase_by_id(challenge, phase_id)
        if phase is None:
            raise InvalidRequestError(
                "REVIEW_PHASE_NOT_FOUND",
                f"Phase {phase_id} is not a phase of challenge {challenge.id}",
                {"challengeId": challenge.id, "phaseId": phase_id},
            )
        return phase

    memo = memo if memo is not None else {}
    for name in (PHASE_NAMES[scorecard_type], FALLBACK_PHASE_NAME):
        key = (challenge.id, normalize_phase_name(name))
        if key not in memo:
            memo[key] = find_phase(challenge, name)
        if memo[key] is not None:
            return memo[key]

    raise InvalidRequestError(
        "REVIEW_PHASE_NOT_FOUND",
        f"No {PHASE_NAMES[scorecard_type]} phase on challenge {challenge.id}",
        {"challengeId": challenge.id, "scorecardType": scorecard_type.value},
    )


def _phase_matches(resource: ResourceSnapshot, phase: PhaseSnapshot) -> bool:
    return resource.phase_id is None or phase.matches_id(resource.phase_id)


def resolve_resource(
    actor: Actor,
    challenge_resources: list[ResourceSnapshot],
    phase: PhaseSnapshot,
    scorecard_type: ScorecardType,
    resource_id: str | None = None,
) -> ResourceSnapshot:
    """Pick the resource that authors a new review.

    Args:
        actor: The requester.
        challenge_resources: Every resource on the challenge.
        phase: The resolved review phase.
        scorecard_type: Type of the review's scorecard.
        resource_id: Resource requested by the caller, if any.

    Returns:
        The authoring resource.

    Raises:
        NotFoundError: ``RESOURCE_NOT_FOUND`` for an unknown explicit resource.
        ForbiddenError: ``RESOURCE_MEMBER_MISMATCH``,
            ``RESOURCE_PHASE_MISMATCH`` or ``FORBIDDEN_CREATE_REVIEW``.
    """
    if resource_id:
        resource = next((r for r in challenge_resources if r.id == resource_id), None)
        if resource is None:
            raise NotFoundError(
                "RESOURCE_NOT_FOUND",
                f"Resource {resource_id} is not assigned to the challenge",
                {"resourceId": resource_id},
            )
        if not actor.is_privileged:
            if resource.member_id != str(actor.user_id):
                raise ForbiddenError(
                    "RESOURCE_MEMBER_MISMATCH",
                    "The resource belongs to another member",
                    {"resourceId": resource_id, "memberId": actor.user_id},
                )
            if not has_permission(resource, Permission.AUTHOR_REVIEWS):
                raise ForbiddenError(
                    "FORBIDDEN_CREATE_REVIEW",
                    "The resource's role cannot author reviews",
                    {"resourceId": resource_id, "roleName": resource.role_name},
                )
        if not _phase_matches(resource, phase):
            raise ForbiddenError(
                "RESOURCE_PHASE_MISMATCH",
                "The resource is assigned to a different phase",
                {
                    "resourceId": resource_id,
                    "resourcePhaseId": resource.phase_id,
                    "phaseId": phase.id,
                },
            )
        return resource

    own = [r for r in challenge_resources if r.member_id == str(actor.user_id)]
    for role_name in ROLE_PRIORITY[scorecard_type]:
        for resource in own:
            if normalize_role_name(resource.role_name) == role_name and _phase_matches(
                resource, phase
            ):
                return resource

    raise ForbiddenError(
        "FORBIDDEN_CREATE_REVIEW",
        f"No resource of the requester may author a {scorecard_type.value} review",
        {"memberId": actor.user_id, "phaseId": phase.id},
    )


async def resolve_review_target(
    scope: RequestScope,
    actor: Actor,
    challenge_id: str,
    scorecard_type: ScorecardType,
    resource_id: str | None = None,
    phase_id: str | None = None,
) -> ReviewTarget:
    """Resolve phase and resource for a new review through the request scope."""
    challenge = await scope.get_challenge(challenge_id)
    phase = resolve_phase(challenge, scorecard_type, phase_id, memo=scope.phases)
    resources = await scope.get_resources(challenge_id)
    resource = resolve_resource(actor, resources, phase, scorecard_type, resource_id)

    logger.debug(
        "review_target_resolved",
        challenge_id=challenge_id,
        phase_id=phase.id,
        resource_id=resource.id,
    )
    return ReviewTarget(phase=phase, resource=resource)
