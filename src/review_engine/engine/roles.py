"""Actor identity and resource capabilities.

Resource role names are free text owned by the resource service. They are
mapped once, through ROLE_CAPABILITIES, onto a closed set of capabilities;
every decision function works on capabilities, never on role strings.
Unknown role names map to Capability.NONE.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field

from review_engine.integrations.snapshots import ResourceSnapshot

ADMIN_ROLE = "administrator"
COPILOT_ROLE = "copilot"
SYSTEM_ACTOR = "System"
UNKNOWN_ACTOR = "unknown"


class Capability(enum.Enum):
    """What a resource lets its member do on a challenge."""

    REVIEWER = "reviewer"
    SCREENER = "screener"
    APPROVER = "approver"
    COPILOT = "copilot"
    SUBMITTER = "submitter"
    MANAGER = "manager"
    OBSERVER = "observer"
    NONE = "none"


class Permission(enum.Enum):
    """Coarse permissions granted by capabilities."""

    AUTHOR_REVIEWS = "author_reviews"
    MANAGE_REVIEWS = "manage_reviews"
    VIEW_OWN_RESULTS = "view_own_results"


# Every Capability must be a key here
CAPABILITY_PERMISSIONS: dict[Capability, frozenset[Permission]] = {
    Capability.REVIEWER: frozenset({Permission.AUTHOR_REVIEWS}),
    Capability.SCREENER: frozenset({Permission.AUTHOR_REVIEWS}),
    Capability.APPROVER: frozenset({Permission.AUTHOR_REVIEWS}),
    Capability.COPILOT: frozenset({Permission.AUTHOR_REVIEWS, Permission.MANAGE_REVIEWS}),
    Capability.SUBMITTER: frozenset({Permission.VIEW_OWN_RESULTS}),
    Capability.MANAGER: frozenset(),
    Capability.OBSERVER: frozenset(),
    Capability.NONE: frozenset(),
}

ROLE_CAPABILITIES: dict[str, Capability] = {
    "reviewer": Capability.REVIEWER,
    "iterative reviewer": Capability.REVIEWER,
    "checkpoint reviewer": Capability.REVIEWER,
    "post-mortem reviewer": Capability.REVIEWER,
    "specification reviewer": Capability.REVIEWER,
    "primary screener": Capability.SCREENER,
    "screener": Capability.SCREENER,
    "checkpoint screener": Capability.SCREENER,
    "approver": Capability.APPROVER,
    "copilot": Capability.COPILOT,
    "submitter": Capability.SUBMITTER,
    "manager": Capability.MANAGER,
    "client manager": Capability.MANAGER,
    "observer": Capability.OBSERVER,
}


def normalize_role_name(name: str | None) -> str:
    """Lower-case a role name and collapse internal whitespace."""
    return " ".join((name or "").lower().split())


def capability_for_role(role_name: str | None) -> Capability:
    """Map a resource role name onto its capability."""
    return ROLE_CAPABILITIES.get(normalize_role_name(role_name), Capability.NONE)


def capability_of(resource: ResourceSnapshot) -> Capability:
    """Capability granted by a resource."""
    return capability_for_role(resource.role_name)


def capabilities_of(resources: Iterable[ResourceSnapshot]) -> set[Capability]:
    """All capabilities granted by a set of resources."""
    return {capability_of(resource) for resource in resources}


def has_permission(resource: ResourceSnapshot, permission: Permission) -> bool:
    """Whether a resource grants the given permission."""
    return permission in CAPABILITY_PERMISSIONS[capability_of(resource)]


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation.

    Attributes:
        user_id: Member id of a human caller.
        handle: Member handle of a human caller.
        roles: Token roles (e.g. ``administrator``, ``copilot``).
        is_machine: True for machine-to-machine callers.
    """

    user_id: str | None = None
    handle: str | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)
    is_machine: bool = False

    @property
    def _normalized_roles(self) -> set[str]:
        return {normalize_role_name(role) for role in self.roles}

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self._normalized_roles

    @property
    def is_privileged(self) -> bool:
        """Admins and machine callers bypass ownership rules."""
        return self.is_admin or self.is_machine

    @property
    def claims_copilot(self) -> bool:
        return COPILOT_ROLE in self._normalized_roles

    @property
    def audit_id(self) -> str:
        """Identifier recorded on audit entries and created_by columns."""
        if self.user_id:
            return str(self.user_id)
        if self.handle:
            return self.handle
        if self.is_machine:
            return SYSTEM_ACTOR
        return UNKNOWN_ACTOR
