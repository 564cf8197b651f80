"""Member directory client."""

from __future__ import annotations

from pydantic import ValidationError

from review_engine.errors import DownstreamError
from review_engine.integrations.base import ServiceClient
from review_engine.integrations.snapshots import MemberProfile


class MemberClient(ServiceClient):
    """Bulk lookup of member handles and ratings."""

    error_code = "MEMBER_SERVICE_ERROR"
    service_name = "member_service"

    async def get_profiles(self, member_ids: list[str]) -> dict[str, MemberProfile]:
        """Look up members by numeric id.

        Args:
            member_ids: Member ids to resolve; duplicates are ignored.

        Returns:
            Profiles keyed by member id. Unknown ids are absent.
        """
        unique_ids = sorted({str(m) for m in member_ids if m})
        if not unique_ids:
            return {}

        data = await self._get_json(
            "members",
            params={
                "userIds": ",".join(unique_ids),
                "fields": "userId,handle,maxRating",
                "perPage": len(unique_ids),
            },
        )
        try:
            profiles = [MemberProfile.model_validate(raw) for raw in data or []]
        except ValidationError as e:
            self.logger.error("member_payload_invalid", error=str(e))
            raise DownstreamError(
                self.error_code,
                "Member payload could not be parsed",
            ) from e
        return {profile.user_id: profile for profile in profiles}
