"""Immutable snapshots of data owned by external services.

Responses from the challenge, resource and member services are parsed into
these models once per request. Field names follow Python conventions; the
camelCase wire names are accepted through aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

FINAL_CHALLENGE_STATUSES = frozenset({"COMPLETED", "CANCELLED"})
FIRST2FINISH_TYPES = frozenset({"first2finish", "first 2 finish", "topgear task"})


class _Snapshot(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class PhaseSnapshot(_Snapshot):
    """A challenge phase as reported by the challenge service.

    Attributes:
        id: Phase instance id on the challenge.
        phase_id: Phase definition id, when reported separately.
        name: Display name, e.g. "Review" or "Appeals".
        is_open: Whether the phase is currently open.
        actual_start_time: When the phase opened.
        actual_end_time: When the phase closed.
    """

    id: str
    phase_id: str | None = None
    name: str
    is_open: bool = False
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None

    @field_validator("is_open", mode="before")
    @classmethod
    def coerce_open(cls, v: Any) -> bool:
        return bool(v)

    @property
    def has_ended(self) -> bool:
        """A phase has ended once it is closed with a recorded end time."""
        return not self.is_open and self.actual_end_time is not None

    def matches_id(self, value: str) -> bool:
        return value in {self.id, self.phase_id}


class ChallengeLegacy(_Snapshot):
    """Legacy classification fields still reported on some challenges."""

    sub_track: str | None = None


class ChallengeSnapshot(_Snapshot):
    """Challenge detail used for authorization and visibility decisions."""

    id: str
    name: str | None = None
    status: str = ""
    type: str | None = None
    phases: list[PhaseSnapshot] = Field(default_factory=list)
    legacy: ChallengeLegacy | None = None

    @field_validator("type", mode="before")
    @classmethod
    def flatten_type(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v.get("name")
        return v

    @property
    def is_final(self) -> bool:
        """True once the challenge is completed or cancelled in any way."""
        status = self.status.strip().upper()
        return status in FINAL_CHALLENGE_STATUSES or status.startswith("CANCELLED_")

    @property
    def is_first2finish(self) -> bool:
        """First2Finish and Topgear tasks show each submitter their results at once."""
        if (self.type or "").strip().lower() in FIRST2FINISH_TYPES:
            return True
        sub_track = self.legacy.sub_track if self.legacy else None
        return (sub_track or "").strip().lower() == "first_2_finish"


class ResourceSnapshot(_Snapshot):
    """A member's assignment to a challenge in one role.

    Attributes:
        id: Resource identifier.
        challenge_id: Challenge the resource belongs to.
        member_id: Member the resource is assigned to.
        member_handle: Member handle, when reported.
        role_id: Resource role id.
        role_name: Resolved resource role name.
        phase_id: Phase the assignment is limited to, if any.
    """

    id: str
    challenge_id: str
    member_id: str
    member_handle: str | None = None
    role_id: str | None = None
    role_name: str | None = None
    phase_id: str | None = None

    @field_validator("member_id", mode="before")
    @classmethod
    def coerce_member_id(cls, v: Any) -> str:
        return str(v)


class MemberProfile(_Snapshot):
    """Public identity of a member from the member directory."""

    user_id: str
    handle: str
    max_rating: int | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_user_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("max_rating", mode="before")
    @classmethod
    def flatten_rating(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v.get("rating")
        return v
