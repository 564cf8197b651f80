"""Pytest fixtures for integration tests.

Provides async database fixtures backed by an in-memory SQLite database,
seeded scorecards and submissions, and in-process stand-ins for the
challenge, resource and member services. While the production system uses
PostgreSQL, these tests use SQLite for fast, isolated testing of the store
and of full review operations.

Seeded challenge ``c1``:

    members   100 reviewer (r-100)    200 reviewer (r-200)
              300 copilot (r-300)     500 submitter (r-500, submission s1)
              600 submitter (r-600, submission s2)
    phases    Submission (ended), Review (open), Appeals (scheduled)
    scorecard sc1 (REVIEW): q1 and q2, scale 1-10, equal weights
              sc2 (REVIEW): q3
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from review_engine.config import EventsConfig
from review_engine.database.models.base import Base
from review_engine.database.models.scorecard import ScorecardType
from review_engine.database.queries.scorecard import create_scorecard
from review_engine.database.queries.submission import create_submission
from review_engine.engine.events import CompletionPublisher
from review_engine.engine.service import ReviewService
from review_engine.errors import DownstreamError, NotFoundError
from review_engine.integrations.snapshots import (
    ChallengeSnapshot,
    MemberProfile,
    PhaseSnapshot,
    ResourceSnapshot,
)

PHASE_ENDED = datetime(2026, 3, 1, tzinfo=timezone.utc)


def make_challenge(
    review_open: bool = True,
    appeals_open: bool = False,
    status: str = "ACTIVE",
) -> ChallengeSnapshot:
    """Challenge c1 in a given stage of its timeline."""
    review_ended = not review_open
    return ChallengeSnapshot(
        id="c1",
        name="Challenge One",
        status=status,
        phases=[
            PhaseSnapshot(id="p-submission", name="Submission", actual_end_time=PHASE_ENDED),
            PhaseSnapshot(
                id="p-review",
                name="Review",
                is_open=review_open,
                actual_end_time=PHASE_ENDED if review_ended else None,
            ),
            PhaseSnapshot(id="p-appeals", name="Appeals", is_open=appeals_open),
        ],
    )


class FakeChallengeClient:
    """Serves challenge snapshots from memory."""

    def __init__(self, *challenges: ChallengeSnapshot) -> None:
        self.challenges = {challenge.id: challenge for challenge in challenges}
        self.calls = 0

    async def get_challenge_detail(self, challenge_id: str) -> ChallengeSnapshot:
        self.calls += 1
        if challenge_id not in self.challenges:
            raise NotFoundError("CHALLENGE_NOT_FOUND", details={"challengeId": challenge_id})
        return self.challenges[challenge_id]


class FakeResourceClient:
    """Serves challenge resources from memory; ``fail`` simulates an outage."""

    def __init__(self, resources: list[ResourceSnapshot]) -> None:
        self.resources = resources
        self.fail = False
        self.calls = 0

    async def get_resource_roles(self) -> dict[str, str]:
        return {}

    async def get_resources(
        self,
        challenge_id: str,
        member_id: str | None = None,
        role_names: dict[str, str] | None = None,
    ) -> list[ResourceSnapshot]:
        self.calls += 1
        if self.fail:
            raise DownstreamError("RESOURCE_SERVICE_ERROR", "resource service unavailable")
        return [
            r
            for r in self.resources
            if r.challenge_id == challenge_id and (member_id is None or r.member_id == member_id)
        ]


class FakeMemberClient:
    """Serves member profiles from memory; ``fail`` simulates an outage."""

    def __init__(self, profiles: list[MemberProfile]) -> None:
        self.profiles = {profile.user_id: profile for profile in profiles}
        self.fail = False

    async def get_profiles(self, member_ids: list[str]) -> dict[str, MemberProfile]:
        if self.fail:
            raise DownstreamError("MEMBER_SERVICE_ERROR", "member service unavailable")
        return {m: self.profiles[m] for m in member_ids if m in self.profiles}


def resource(resource_id: str, member_id: str, role_name: str, handle: str) -> ResourceSnapshot:
    return ResourceSnapshot(
        id=resource_id,
        challenge_id="c1",
        member_id=member_id,
        member_handle=handle,
        role_name=role_name,
    )


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio as the async backend for pytest-asyncio."""
    return "asyncio"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine for testing.

    A static pool keeps every session on the same in-memory database.

    Yields:
        Configured AsyncEngine instance using in-memory SQLite.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a new async database session for each test.

    The session is rolled back after the test completes to ensure test
    isolation.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Commit the scorecards and submissions every service test relies on."""
    async with session_factory() as session:
        async with session.begin():
            await create_scorecard(
                session,
                name="Review Scorecard",
                type=ScorecardType.REVIEW,
                scorecard_id="sc1",
                groups=[
                    {
                        "id": "g1",
                        "name": "Quality",
                        "weight": 100.0,
                        "sections": [
                            {
                                "id": "sec1",
                                "name": "Code",
                                "weight": 100.0,
                                "questions": [
                                    {"id": "q1", "type": "SCALE", "weight": 50.0, "scale_min": 1, "scale_max": 10},
                                    {"id": "q2", "type": "SCALE", "weight": 50.0, "scale_min": 1, "scale_max": 10},
                                ],
                            }
                        ],
                    }
                ],
            )
            await create_scorecard(
                session,
                name="Other Scorecard",
                type=ScorecardType.REVIEW,
                scorecard_id="sc2",
                groups=[
                    {
                        "id": "g2",
                        "name": "Other",
                        "weight": 100.0,
                        "sections": [
                            {
                                "id": "sec2",
                                "name": "Other",
                                "weight": 100.0,
                                "questions": [{"id": "q3", "type": "YES_NO", "weight": 100.0}],
                            }
                        ],
                    }
                ],
            )
            await create_submission(session, challenge_id="c1", member_id="500", submission_id="s1")
            await create_submission(session, challenge_id="c1", member_id="600", submission_id="s2")


@pytest.fixture
def challenge_client() -> FakeChallengeClient:
    return FakeChallengeClient(make_challenge())


@pytest.fixture
def resource_client() -> FakeResourceClient:
    return FakeResourceClient(
        [
            resource("r-100", "100", "Reviewer", "reviewer1"),
            resource("r-200", "200", "Reviewer", "reviewer2"),
            resource("r-300", "300", "Copilot", "copilot1"),
            resource("r-500", "500", "Submitter", "sub1"),
            resource("r-600", "600", "Submitter", "sub2"),
        ]
    )


@pytest.fixture
def member_client() -> FakeMemberClient:
    return FakeMemberClient(
        [
            MemberProfile(user_id="100", handle="reviewer1", max_rating=1500),
            MemberProfile(user_id="500", handle="sub1", max_rating=1200),
        ]
    )


@pytest.fixture
def bus() -> AsyncMock:
    """Event bus stand-in; inspect ``bus.publish`` for published events."""
    return AsyncMock()


@pytest_asyncio.fixture
async def review_service(
    session_factory: async_sessionmaker[AsyncSession],
    seeded: None,
    challenge_client: FakeChallengeClient,
    resource_client: FakeResourceClient,
    member_client: FakeMemberClient,
    bus: AsyncMock,
) -> ReviewService:
    """ReviewService over the seeded store and in-memory collaborators."""
    return ReviewService(
        session_factory,
        challenge_client,  # type: ignore[arg-type]
        resource_client,  # type: ignore[arg-type]
        member_client=member_client,  # type: ignore[arg-type]
        publisher=CompletionPublisher(EventsConfig(), bus),
    )
