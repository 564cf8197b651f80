"""Review endpoints for Review Engine.

This module provides REST API endpoints over the ReviewService:
- Create a review
- List reviews with filters and paging
- Get, update and delete a review
- Read a review's audit history

Authorization, visibility and error mapping live in the engine; the
routes only translate HTTP into service calls.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from fastapi import status as http_status

from review_engine.database.models.review import ReviewStatus
from review_engine.engine.roles import Actor
from review_engine.engine.schemas import (
    AuditEntryOut,
    ReviewCreate,
    ReviewOut,
    ReviewPage,
    ReviewUpdate,
)
from review_engine.engine.service import ReviewService
from review_engine.logging import bind_request_context, get_logger
from review_engine.web.dependencies import get_actor, get_review_service

logger = get_logger(__name__)


def create_reviews_router() -> APIRouter:
    """Create reviews router.

    Routes:
        POST /reviews - Create a review
        GET /reviews - List reviews
        GET /reviews/{review_id} - Get a review
        PATCH /reviews/{review_id} - Update a review
        DELETE /reviews/{review_id} - Delete a review
        GET /reviews/{review_id}/audit - Audit history of a review
    """
    router = APIRouter(prefix="/reviews", tags=["reviews"])

    @router.post("", response_model=ReviewOut, status_code=http_status.HTTP_201_CREATED)
    async def create_review(
        payload: ReviewCreate,
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewOut:
        return await service.create_review(actor, payload)

    @router.get("", response_model=ReviewPage)
    async def list_reviews(
        challenge_id: str | None = Query(default=None, alias="challengeId"),
        submission_id: str | None = Query(default=None, alias="submissionId"),
        scorecard_id: str | None = Query(default=None, alias="scorecardId"),
        resource_id: str | None = Query(default=None, alias="resourceId"),
        status: ReviewStatus | None = None,
        limit: int = Query(default=100, ge=1, le=1000),
        offset: int = Query(default=0, ge=0),
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewPage:
        """List reviews visible to the caller.

        Masked rows are returned without scores or answers; rows the caller
        may not see at all are omitted.
        """
        return await service.list_reviews(
            actor,
            challenge_id=challenge_id,
            submission_id=submission_id,
            scorecard_id=scorecard_id,
            resource_id=resource_id,
            status=status,
            limit=limit,
            offset=offset,
        )

    @router.get("/{review_id}", response_model=ReviewOut)
    async def get_review(
        review_id: str,
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewOut:
        bind_request_context(actor_id=actor.audit_id, review_id=review_id)
        return await service.get_review(actor, review_id)

    @router.patch("/{review_id}", response_model=ReviewOut)
    async def update_review(
        review_id: str,
        payload: ReviewUpdate,
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewOut:
        bind_request_context(actor_id=actor.audit_id, review_id=review_id)
        return await service.update_review(actor, review_id, payload)

    @router.delete("/{review_id}", status_code=http_status.HTTP_204_NO_CONTENT)
    async def delete_review(
        review_id: str,
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> Response:
        bind_request_context(actor_id=actor.audit_id, review_id=review_id)
        await service.delete_review(actor, review_id)
        logger.info("review_delete_requested", review_id=review_id)
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    @router.get("/{review_id}/audit", response_model=list[AuditEntryOut])
    async def get_review_audit(
        review_id: str,
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> list[AuditEntryOut]:
        bind_request_context(actor_id=actor.audit_id, review_id=review_id)
        return await service.get_review_audit(actor, review_id)

    return router
