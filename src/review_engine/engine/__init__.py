"""Review lifecycle engine.

Pure decision components (roles, resolver, scoring, policy, visibility,
audit diffing) plus the ReviewService orchestrator that sequences them
around the store and the external collaborators.
"""

from review_engine.engine.policy import AccessMode, Allow, Deny, ItemAction, enforce
from review_engine.engine.roles import Actor, Capability, Permission
from review_engine.engine.schemas import (
    AuditEntryOut,
    ReviewCreate,
    ReviewItemCreate,
    ReviewItemOut,
    ReviewItemUpdate,
    ReviewOut,
    ReviewPage,
    ReviewUpdate,
)
from review_engine.engine.scope import RequestScope
from review_engine.engine.service import ReviewService
from review_engine.engine.visibility import Hidden, Masked, Visible

__all__ = [
    # Orchestration
    "ReviewService",
    "RequestScope",
    # Identity and decisions
    "Actor",
    "Capability",
    "Permission",
    "AccessMode",
    "ItemAction",
    "Allow",
    "Deny",
    "enforce",
    "Visible",
    "Masked",
    "Hidden",
    # Schemas
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewItemCreate",
    "ReviewItemUpdate",
    "ReviewOut",
    "ReviewItemOut",
    "ReviewPage",
    "AuditEntryOut",
]
