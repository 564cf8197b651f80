"""Authorization decisions for review and review item mutations.

Every function here is pure: it takes the actor, snapshots of the
challenge and the actor's resources, and the requested change, and returns
``Allow(mode)`` or ``Deny(code, ...)``. Nothing is fetched or persisted.
``enforce`` turns a Deny into the matching ReviewEngineError.

Review update decision order:

    1. immutable fields present          -> REVIEW_UPDATE_IMMUTABLE_FIELDS
    2. admin or machine caller           -> Allow(ADMIN)
    3. challenge completed or cancelled  -> ..._CHALLENGE_COMPLETED
    4. owns the review's resource        -> Allow(OWNER)
       holds a copilot resource          -> Allow(COPILOT), status only
       claims copilot, no resource       -> ..._NOT_COPILOT
       otherwise                         -> ..._NOT_OWNER
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from review_engine.database.models.review import ReviewStatus
from review_engine.engine.roles import Actor, Permission, has_permission
from review_engine.errors import (
    ConflictError,
    ErrorKind,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    ReviewEngineError,
)
from review_engine.integrations.snapshots import (
    ChallengeSnapshot,
    PhaseSnapshot,
    ResourceSnapshot,
)

IMMUTABLE_REVIEW_FIELDS = frozenset({"resource_id", "scorecard_id", "submission_id", "phase_id"})
COPILOT_REVIEW_FIELDS = frozenset({"status"})
COPILOT_ITEM_FIELDS = frozenset({"final_answer", "manager_comment"})
REOPEN_STATUSES = frozenset({ReviewStatus.PENDING, ReviewStatus.IN_PROGRESS})


class AccessMode(enum.Enum):
    """Capacity in which an allowed actor performs a mutation."""

    ADMIN = "admin"
    OWNER = "owner"
    COPILOT = "copilot"


class ItemAction(enum.Enum):
    """Review item mutation kinds, used to build action-specific codes."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Allow:
    mode: AccessMode


@dataclass(frozen=True)
class Deny:
    code: str
    message: str
    kind: ErrorKind = ErrorKind.FORBIDDEN
    details: dict[str, Any] = field(default_factory=dict)


Decision = Union[Allow, Deny]

_ERRORS_BY_KIND: dict[ErrorKind, type[ReviewEngineError]] = {
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.VALIDATION: InvalidRequestError,
    ErrorKind.FORBIDDEN: ForbiddenError,
    ErrorKind.CONFLICT: ConflictError,
}


def enforce(decision: Decision | None) -> AccessMode | None:
    """Return the access mode of an Allow, raise the error of a Deny.

    Checks that only ever deny return None when they pass.
    """
    if decision is None:
        return None
    if isinstance(decision, Deny):
        error_class = _ERRORS_BY_KIND.get(decision.kind, ForbiddenError)
        raise error_class(decision.code, decision.message, dict(decision.details))
    return decision.mode


def _is_copilot_resource(resource: ResourceSnapshot) -> bool:
    return has_permission(resource, Permission.MANAGE_REVIEWS)


def check_immutable_fields(fields: Iterable[str]) -> Deny | None:
    """Deny any attempt to change a review's identity columns."""
    touched = sorted(set(fields) & IMMUTABLE_REVIEW_FIELDS)
    if touched:
        return Deny(
            "REVIEW_UPDATE_IMMUTABLE_FIELDS",
            f"Fields cannot be updated: {', '.join(touched)}",
            ErrorKind.VALIDATION,
            {"fields": touched},
        )
    return None


def _copilot_review_fields_allowed(changes: Mapping[str, Any]) -> bool:
    for name, value in changes.items():
        if name in COPILOT_REVIEW_FIELDS:
            continue
        if name == "committed" and value is False and changes.get("status") in REOPEN_STATUSES:
            continue
        return False
    return True


def decide_review_update(
    actor: Actor,
    review_resource_id: str,
    challenge: ChallengeSnapshot,
    actor_resources: list[ResourceSnapshot],
    changes: Mapping[str, Any],
) -> Decision:
    """Decide whether the actor may apply ``changes`` to a review.

    Args:
        actor: The caller.
        review_resource_id: Resource that owns the review.
        challenge: Challenge the review belongs to.
        actor_resources: The caller's resources on that challenge.
        changes: Requested field values keyed by field name.

    Returns:
        Allow with the access mode, or Deny with a reason.
    """
    immutable = check_immutable_fields(changes)
    if immutable is not None:
        return immutable

    if actor.is_privileged:
        return Allow(AccessMode.ADMIN)

    if challenge.is_final:
        return Deny(
            "REVIEW_UPDATE_FORBIDDEN_CHALLENGE_COMPLETED",
            "Reviews cannot be changed once the challenge is completed",
            details={"challengeId": challenge.id, "status": challenge.status},
        )

    if any(r.id == review_resource_id for r in actor_resources):
        return Allow(AccessMode.OWNER)

    if any(_is_copilot_resource(r) for r in actor_resources):
        if not _copilot_review_fields_allowed(changes):
            return Deny(
                "REVIEW_UPDATE_FORBIDDEN_NOT_OWNER",
                "Copilots may only change the review status",
                details={"fields": sorted(changes)},
            )
        return Allow(AccessMode.COPILOT)

    if actor.claims_copilot and not actor_resources:
        return Deny(
            "REVIEW_UPDATE_FORBIDDEN_NOT_COPILOT",
            "The copilot is not assigned to the challenge",
            details={"challengeId": challenge.id, "memberId": actor.user_id},
        )

    return Deny(
        "REVIEW_UPDATE_FORBIDDEN_NOT_OWNER",
        "Only the reviewer who owns the review may change it",
        details={"resourceId": review_resource_id, "memberId": actor.user_id},
    )


def decide_reopen(
    current_status: ReviewStatus,
    changes: Mapping[str, Any],
    phase: PhaseSnapshot | None,
) -> Deny | None:
    """Validate moving a completed review back to an editable status."""
    new_status = changes.get("status")
    if current_status != ReviewStatus.COMPLETED or new_status not in REOPEN_STATUSES:
        return None

    if changes.get("committed") is True:
        return Deny(
            "REVIEW_UPDATE_INVALID_STATUS",
            "A reopened review cannot stay committed",
            ErrorKind.VALIDATION,
            {"status": new_status.value},
        )

    if phase is not None and phase.has_ended:
        return Deny(
            "REVIEW_UPDATE_FORBIDDEN_PHASE_CLOSED",
            "The review's phase has ended; the review cannot be reopened",
            details={"phaseId": phase.id, "phaseName": phase.name},
        )
    return None


def decide_item_change(
    actor: Actor,
    action: ItemAction,
    review_resource_id: str,
    actor_resources: list[ResourceSnapshot],
) -> Decision:
    """Decide whether the actor may create, update or delete a review item."""
    if actor.is_privileged:
        return Allow(AccessMode.ADMIN)

    if any(r.id == review_resource_id for r in actor_resources):
        return Allow(AccessMode.OWNER)

    if any(_is_copilot_resource(r) for r in actor_resources):
        return Allow(AccessMode.COPILOT)

    if actor.claims_copilot and not actor_resources:
        return Deny(
            f"REVIEW_ITEM_{action.value}_FORBIDDEN_NOT_COPILOT",
            "The copilot is not assigned to the challenge",
            details={"memberId": actor.user_id, "resourceId": review_resource_id},
        )

    return Deny(
        f"REVIEW_ITEM_{action.value}_FORBIDDEN_NOT_OWNER",
        "Only the reviewer who owns the review may change its items",
        details={"memberId": actor.user_id, "resourceId": review_resource_id},
    )


def check_item_scope(
    mode: AccessMode,
    action: ItemAction,
    changes: Mapping[str, Any],
    manager_comment: str | None,
) -> Decision:
    """Restrict which item fields each access mode may change.

    Args:
        mode: Access mode granted by decide_item_change.
        action: The item mutation being performed.
        changes: Fields whose values actually change.
        manager_comment: Manager comment the item will carry afterwards.
    """
    if mode == AccessMode.ADMIN:
        return Allow(mode)

    if mode == AccessMode.OWNER:
        if "manager_comment" in changes:
            return Deny(
                f"REVIEW_ITEM_{action.value}_FORBIDDEN_MANAGER_COMMENT",
                "Only copilots may set the manager comment",
            )
        return Allow(mode)

    if action != ItemAction.UPDATE:
        return Allow(mode)

    outside = sorted(set(changes) - COPILOT_ITEM_FIELDS)
    if outside:
        return Deny(
            "REVIEW_ITEM_UPDATE_FORBIDDEN_COPILOT_SCOPE",
            "Copilots may only change the final answer and manager comment",
            details={"fields": outside},
        )
    if "final_answer" in changes and not (manager_comment or "").strip():
        return Deny(
            "REVIEW_ITEM_UPDATE_MANAGER_COMMENT_REQUIRED",
            "A manager comment is required when a copilot changes an answer",
            ErrorKind.VALIDATION,
        )
    return Allow(mode)


def decide_review_delete(actor: Actor, actor_resources: list[ResourceSnapshot]) -> Decision:
    """Only admins and the challenge's copilots may delete reviews."""
    if actor.is_privileged:
        return Allow(AccessMode.ADMIN)
    if any(_is_copilot_resource(r) for r in actor_resources):
        return Allow(AccessMode.COPILOT)
    return Deny(
        "REVIEW_DELETE_FORBIDDEN_NOT_COPILOT",
        "Only a copilot of the challenge may delete reviews",
        details={"memberId": actor.user_id},
    )


def decide_audit_access(actor: Actor, actor_resources: list[ResourceSnapshot]) -> Decision:
    """Audit history is readable by admins and the challenge's copilots."""
    if actor.is_privileged:
        return Allow(AccessMode.ADMIN)
    if any(_is_copilot_resource(r) for r in actor_resources):
        return Allow(AccessMode.COPILOT)
    return Deny(
        "FORBIDDEN_REVIEW_AUDIT_ACCESS",
        "Only admins and copilots may read review audit history",
        details={"memberId": actor.user_id},
    )
