"""Integration tests for the review HTTP API.

Drives the FastAPI app in-process over the seeded store. The ASGI transport
does not run the lifespan, so the fixtures place the service and session
factory on app state directly.
"""

from __future__ import annotations

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from conftest import FakeResourceClient
from review_engine.config import ReviewEngineConfig
from review_engine.engine.service import ReviewService
from review_engine.web.app import create_app

REVIEWER = {"X-Actor-Id": "100", "X-Actor-Handle": "reviewer1"}
PEER = {"X-Actor-Id": "200", "X-Actor-Handle": "reviewer2"}
COPILOT = {"X-Actor-Id": "300", "X-Actor-Handle": "copilot1", "X-Actor-Roles": "copilot"}
SUBMITTER = {"X-Actor-Id": "500", "X-Actor-Handle": "sub1"}
ADMIN = {"X-Actor-Id": "1", "X-Actor-Handle": "admin", "X-Actor-Roles": "user, administrator"}

REVIEW_BODY = {
    "submissionId": "s1",
    "scorecardId": "sc1",
    "reviewItems": [
        {"scorecardQuestionId": "q1", "initialAnswer": "10"},
        {"scorecardQuestionId": "q2", "initialAnswer": "1"},
    ],
}


@pytest.fixture
def app(
    review_service: ReviewService,
    session_factory: async_sessionmaker[AsyncSession],
) -> FastAPI:
    application = create_app(ReviewEngineConfig())
    application.state.review_service = review_service
    application.state.session_factory = session_factory
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


async def create_review(client: AsyncClient, body: dict | None = None) -> dict:
    response = await client.post("/reviews", json=body or REVIEW_BODY, headers=REVIEWER)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoints:
    """Test liveness and readiness endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health/")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_ready(self, client: AsyncClient) -> None:
        response = await client.get("/health/ready")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "database": "connected",
            "services": {
                "challenge": "configured",
                "resources": "configured",
                "members": "configured",
                "eventBus": "configured",
            },
        }


class TestReviewEndpoints:
    """Test the review routes end to end."""

    @pytest.mark.asyncio
    async def test_create_review(self, client: AsyncClient) -> None:
        response = await client.post(
            "/reviews",
            json=REVIEW_BODY,
            headers={**REVIEWER, "X-Correlation-ID": "corr-1"},
        )

        assert response.status_code == 201
        assert response.headers["X-Correlation-ID"] == "corr-1"
        body = response.json()
        assert body["resourceId"] == "r-100"
        assert body["phaseId"] == "p-review"
        assert body["status"] == "PENDING"
        assert body["initialScore"] == 50.0
        assert body["reviewerHandle"] == "reviewer1"
        assert {i["scorecardQuestionId"] for i in body["reviewItems"]} == {"q1", "q2"}

    @pytest.mark.asyncio
    async def test_correlation_id_generated(self, client: AsyncClient) -> None:
        response = await client.get("/health/")
        assert response.headers["X-Correlation-ID"]

    @pytest.mark.asyncio
    async def test_create_malformed_body(self, client: AsyncClient) -> None:
        response = await client.post("/reviews", json={"scorecardId": "sc1"}, headers=REVIEWER)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_create_duplicate_conflicts(self, client: AsyncClient) -> None:
        await create_review(client)

        response = await client.post("/reviews", json=REVIEW_BODY, headers=REVIEWER)

        assert response.status_code == 409
        assert response.json()["code"] == "REVIEW_ALREADY_EXISTS"

    @pytest.mark.asyncio
    async def test_create_forbidden_for_submitter(self, client: AsyncClient) -> None:
        response = await client.post("/reviews", json=REVIEW_BODY, headers=SUBMITTER)

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN_CREATE_REVIEW"

    @pytest.mark.asyncio
    async def test_get_review(self, client: AsyncClient) -> None:
        created = await create_review(client)

        response = await client.get(f"/reviews/{created['id']}", headers=REVIEWER)

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]
        assert response.json()["submitterHandle"] == "sub1"

    @pytest.mark.asyncio
    async def test_get_review_hidden_from_submitter(self, client: AsyncClient) -> None:
        created = await create_review(client)

        response = await client.get(f"/reviews/{created['id']}", headers=SUBMITTER)

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "FORBIDDEN_REVIEW_ACCESS_PHASE"
        assert body["details"] == {"reviewId": created["id"]}

    @pytest.mark.asyncio
    async def test_get_unknown_review(self, client: AsyncClient) -> None:
        response = await client.get("/reviews/missing", headers=REVIEWER)

        assert response.status_code == 404
        assert response.json()["code"] == "REVIEW_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_list_reviews(self, client: AsyncClient) -> None:
        await create_review(client)

        response = await client.get(
            "/reviews",
            params={"challengeId": "c1", "status": "PENDING", "limit": 10},
            headers=ADMIN,
        )

        assert response.status_code == 200
        page = response.json()
        assert page["total"] == 1
        assert page["limit"] == 10
        assert page["offset"] == 0
        assert page["data"][0]["resourceId"] == "r-100"

    @pytest.mark.asyncio
    async def test_list_rejects_bad_limit(self, client: AsyncClient) -> None:
        response = await client.get("/reviews", params={"limit": 0}, headers=ADMIN)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_review_completes(self, client: AsyncClient, bus: AsyncMock) -> None:
        """Test completing a review over HTTP publishes the completion event."""
        created = await create_review(client)

        response = await client.patch(
            f"/reviews/{created['id']}",
            json={"status": "COMPLETED", "committed": True},
            headers=REVIEWER,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["committed"] is True
        bus.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_identity_fields_rejected(self, client: AsyncClient) -> None:
        created = await create_review(client)

        response = await client.patch(
            f"/reviews/{created['id']}",
            json={"resourceId": "r-200"},
            headers=REVIEWER,
        )

        assert response.status_code == 400
        assert response.json() == {
            "code": "REVIEW_UPDATE_IMMUTABLE_FIELDS",
            "message": "Fields cannot be updated: resource_id",
            "details": {"fields": ["resource_id"]},
        }

    @pytest.mark.asyncio
    async def test_update_by_peer_forbidden(self, client: AsyncClient) -> None:
        created = await create_review(client)

        response = await client.patch(
            f"/reviews/{created['id']}",
            json={"status": "IN_PROGRESS"},
            headers=PEER,
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_and_audit(self, client: AsyncClient) -> None:
        """Test a copilot deletes a review and its history stays readable."""
        created = await create_review(client)

        response = await client.delete(f"/reviews/{created['id']}", headers=COPILOT)
        assert response.status_code == 204

        response = await client.get(f"/reviews/{created['id']}", headers=ADMIN)
        assert response.status_code == 404

        response = await client.get(f"/reviews/{created['id']}/audit", headers=COPILOT)
        assert response.status_code == 200
        entries = response.json()
        assert [e["actorId"] for e in entries] == ["100", "300"]
        assert all(e["reviewId"] == created["id"] for e in entries)

    @pytest.mark.asyncio
    async def test_audit_requires_copilot(self, client: AsyncClient) -> None:
        created = await create_review(client)

        response = await client.get(f"/reviews/{created['id']}/audit", headers=REVIEWER)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_downstream_failure_is_generic(
        self, client: AsyncClient, resource_client: FakeResourceClient
    ) -> None:
        """Test a service outage surfaces as a generic internal error."""
        resource_client.fail = True

        response = await client.post("/reviews", json=REVIEW_BODY, headers=REVIEWER)

        assert response.status_code == 500
        assert response.json() == {
            "code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": {},
        }


class TestReviewItemEndpoints:
    """Test the review item routes end to end."""

    @pytest.mark.asyncio
    async def test_item_lifecycle(self, client: AsyncClient) -> None:
        created = await create_review(
            client,
            {
                "submissionId": "s1",
                "scorecardId": "sc1",
                "reviewItems": [{"scorecardQuestionId": "q1", "initialAnswer": "10"}],
            },
        )

        response = await client.post(
            "/review-items",
            json={"reviewId": created["id"], "scorecardQuestionId": "q2", "initialAnswer": "1"},
            headers=REVIEWER,
        )
        assert response.status_code == 201
        item = response.json()
        assert item["reviewId"] == created["id"]
        assert item["scorecardQuestionId"] == "q2"

        response = await client.patch(
            f"/review-items/{item['id']}",
            json={"finalAnswer": "10"},
            headers=REVIEWER,
        )
        assert response.status_code == 200
        assert response.json()["finalAnswer"] == "10"

        response = await client.get(f"/reviews/{created['id']}", headers=REVIEWER)
        assert response.json()["finalScore"] == 100.0

        response = await client.delete(
            f"/review-items/{item['id']}",
            params={"reviewId": created["id"]},
            headers=REVIEWER,
        )
        assert response.status_code == 204

        response = await client.get(f"/reviews/{created['id']}", headers=REVIEWER)
        assert len(response.json()["reviewItems"]) == 1

    @pytest.mark.asyncio
    async def test_item_conflict(self, client: AsyncClient) -> None:
        created = await create_review(client)

        response = await client.post(
            "/review-items",
            json={"reviewId": created["id"], "scorecardQuestionId": "q1", "initialAnswer": "3"},
            headers=REVIEWER,
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_delete_item_review_mismatch(self, client: AsyncClient) -> None:
        created = await create_review(client)
        item_id = created["reviewItems"][0]["id"]

        response = await client.delete(
            f"/review-items/{item_id}",
            params={"reviewId": "other"},
            headers=REVIEWER,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "REVIEW_ITEM_REVIEW_MISMATCH"
