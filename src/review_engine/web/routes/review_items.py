"""Review item endpoints for Review Engine."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from fastapi import status as http_status

from review_engine.engine.roles import Actor
from review_engine.engine.schemas import ReviewItemCreate, ReviewItemOut, ReviewItemUpdate
from review_engine.engine.service import ReviewService
from review_engine.logging import bind_request_context
from review_engine.web.dependencies import get_actor, get_review_service


def create_review_items_router() -> APIRouter:
    """Create review items router.

    Routes:
        POST /review-items - Add an item to a review
        PATCH /review-items/{item_id} - Update an item
        DELETE /review-items/{item_id} - Delete an item
    """
    router = APIRouter(prefix="/review-items", tags=["review-items"])

    @router.post("", response_model=ReviewItemOut, status_code=http_status.HTTP_201_CREATED)
    async def create_review_item(
        payload: ReviewItemCreate,
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewItemOut:
        bind_request_context(actor_id=actor.audit_id, review_id=payload.review_id)
        return await service.create_review_item(actor, payload)

    @router.patch("/{item_id}", response_model=ReviewItemOut)
    async def update_review_item(
        item_id: str,
        payload: ReviewItemUpdate,
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> ReviewItemOut:
        return await service.update_review_item(actor, item_id, payload)

    @router.delete("/{item_id}", status_code=http_status.HTTP_204_NO_CONTENT)
    async def delete_review_item(
        item_id: str,
        review_id: str | None = Query(default=None, alias="reviewId"),
        actor: Actor = Depends(get_actor),  # noqa: B008
        service: ReviewService = Depends(get_review_service),  # noqa: B008
    ) -> Response:
        await service.delete_review_item(actor, item_id, review_id=review_id)
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    return router
