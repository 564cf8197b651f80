"""Clients for the services Review Engine depends on.

The challenge service, resource service and member directory are read-only
collaborators; the event bus receives review completion events.
"""

from review_engine.integrations.challenge import ChallengeClient
from review_engine.integrations.event_bus import EventBusClient
from review_engine.integrations.members import MemberClient
from review_engine.integrations.resources import ResourceClient
from review_engine.integrations.snapshots import (
    ChallengeSnapshot,
    MemberProfile,
    PhaseSnapshot,
    ResourceSnapshot,
)

__all__ = [
    "ChallengeClient",
    "ResourceClient",
    "MemberClient",
    "EventBusClient",
    "ChallengeSnapshot",
    "PhaseSnapshot",
    "ResourceSnapshot",
    "MemberProfile",
]
