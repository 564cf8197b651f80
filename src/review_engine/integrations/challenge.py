"""Challenge service client."""

from __future__ import annotations

from pydantic import ValidationError

from review_engine.errors import DownstreamError, NotFoundError
from review_engine.integrations.base import ServiceClient
from review_engine.integrations.snapshots import ChallengeSnapshot


class ChallengeClient(ServiceClient):
    """Read-only access to challenge detail (status and phases)."""

    error_code = "CHALLENGE_SERVICE_ERROR"
    service_name = "challenge_service"

    async def get_challenge_detail(self, challenge_id: str) -> ChallengeSnapshot:
        """Fetch a challenge with its phases.

        Args:
            challenge_id: Challenge identifier.

        Returns:
            Parsed challenge snapshot.

        Raises:
            NotFoundError: If the challenge service reports 404.
            DownstreamError: On any other failure.
        """
        try:
            data = await self._get_json(f"challenges/{challenge_id}")
        except DownstreamError as e:
            if e.details.get("status_code") == 404:
                raise NotFoundError(
                    "CHALLENGE_NOT_FOUND",
                    f"Challenge {challenge_id} not found",
                    {"challengeId": challenge_id},
                ) from e
            raise

        try:
            challenge = ChallengeSnapshot.model_validate(data)
        except ValidationError as e:
            self.logger.error(
                "challenge_payload_invalid",
                challenge_id=challenge_id,
                error=str(e),
            )
            raise DownstreamError(
                self.error_code,
                "Challenge payload could not be parsed",
                {"challengeId": challenge_id},
            ) from e

        self.logger.debug(
            "challenge_fetched",
            challenge_id=challenge_id,
            status=challenge.status,
            phase_count=len(challenge.phases),
        )
        return challenge
