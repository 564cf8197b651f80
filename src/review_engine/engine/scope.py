"""Request-scoped memoization of external lookups.

A RequestScope is created for one operation by one actor and discarded
afterwards. It is never shared between requests, so cached challenge and
resource data can never leak into another actor's decision.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from review_engine.integrations.challenge import ChallengeClient
from review_engine.integrations.members import MemberClient
from review_engine.integrations.resources import ResourceClient
from review_engine.integrations.snapshots import (
    ChallengeSnapshot,
    MemberProfile,
    PhaseSnapshot,
    ResourceSnapshot,
)
from review_engine.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RequestScope:
    """Memoized collaborator access for a single request.

    Attributes:
        challenges: Challenge snapshots keyed by challenge id.
        resources: Challenge resource lists keyed by challenge id.
        phases: Resolved phases keyed by (challenge id, phase name).
        profiles: Member profiles keyed by member id.
    """

    challenge_client: ChallengeClient
    resource_client: ResourceClient
    member_client: MemberClient | None = None
    challenges: dict[str, ChallengeSnapshot] = field(default_factory=dict)
    resources: dict[str, list[ResourceSnapshot]] = field(default_factory=dict)
    phases: dict[tuple[str, str], PhaseSnapshot | None] = field(default_factory=dict)
    profiles: dict[str, MemberProfile] = field(default_factory=dict)
    _role_names: dict[str, str] | None = None

    async def get_challenge(self, challenge_id: str) -> ChallengeSnapshot:
        """Challenge detail, fetched at most once per request."""
        if challenge_id not in self.challenges:
            self.challenges[challenge_id] = (
                await self.challenge_client.get_challenge_detail(challenge_id)
            )
        return self.challenges[challenge_id]

    async def get_resources(self, challenge_id: str) -> list[ResourceSnapshot]:
        """All resources of a challenge with role names resolved."""
        if challenge_id not in self.resources:
            if self._role_names is None:
                self._role_names = await self.resource_client.get_resource_roles()
            self.resources[challenge_id] = await self.resource_client.get_resources(
                challenge_id, role_names=self._role_names
            )
        return self.resources[challenge_id]

    async def get_member_resources(
        self, challenge_id: str, member_id: str | None
    ) -> list[ResourceSnapshot]:
        """A member's resources on a challenge, filtered from the cached list."""
        if not member_id:
            return []
        resources = await self.get_resources(challenge_id)
        return [r for r in resources if r.member_id == str(member_id)]

    async def get_profiles(self, member_ids: list[str]) -> dict[str, MemberProfile]:
        """Member profiles; empty when no member directory is configured.

        Only ids not already cached are looked up.
        """
        if self.member_client is None:
            return {}
        missing = sorted({str(m) for m in member_ids if m} - set(self.profiles))
        if missing:
            self.profiles.update(await self.member_client.get_profiles(missing))
        return {m: self.profiles[m] for m in member_ids if m in self.profiles}
