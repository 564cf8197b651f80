"""Resource service client.

Resources assign members to challenges in a role. Role names are resolved
from the resource-roles endpoint and attached to each snapshot.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from review_engine.errors import DownstreamError
from review_engine.integrations.base import ServiceClient
from review_engine.integrations.snapshots import ResourceSnapshot


class ResourceClient(ServiceClient):
    """Read-only access to challenge resources and resource roles."""

    error_code = "RESOURCE_SERVICE_ERROR"
    service_name = "resource_service"

    async def get_resource_roles(self) -> dict[str, str]:
        """Fetch resource roles as a role id to role name mapping."""
        data = await self._get_json("resource-roles")
        roles: dict[str, str] = {}
        for role in data or []:
            if role.get("id") is not None and role.get("name"):
                roles[str(role["id"])] = role["name"]
        return roles

    async def get_resources(
        self,
        challenge_id: str,
        member_id: str | None = None,
        role_names: dict[str, str] | None = None,
    ) -> list[ResourceSnapshot]:
        """Fetch the resources of a challenge.

        Args:
            challenge_id: Challenge to list resources for.
            member_id: Restrict to one member.
            role_names: Role id to name mapping used to fill ``role_name``
                where the payload does not carry it.

        Returns:
            Resource snapshots in service order.
        """
        params: dict[str, Any] = {"challengeId": challenge_id}
        if member_id is not None:
            params["memberId"] = member_id
        data = await self._get_json("resources", params=params)

        resources: list[ResourceSnapshot] = []
        for raw in data or []:
            record = dict(raw)
            if not record.get("roleName") and role_names:
                record["roleName"] = role_names.get(str(record.get("roleId")))
            try:
                resources.append(ResourceSnapshot.model_validate(record))
            except ValidationError as e:
                self.logger.error(
                    "resource_payload_invalid",
                    challenge_id=challenge_id,
                    error=str(e),
                )
                raise DownstreamError(
                    self.error_code,
                    "Resource payload could not be parsed",
                    {"challengeId": challenge_id},
                ) from e
        return resources

    async def get_member_resources_roles(
        self, challenge_id: str, member_id: str
    ) -> list[ResourceSnapshot]:
        """Fetch a member's resources on a challenge with role names resolved."""
        role_names = await self.get_resource_roles()
        resources = await self.get_resources(challenge_id, role_names=role_names)
        member_resources = [r for r in resources if r.member_id == str(member_id)]
        self.logger.debug(
            "member_resources_fetched",
            challenge_id=challenge_id,
            member_id=member_id,
            count=len(member_resources),
        )
        return member_resources
