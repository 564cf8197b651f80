"""Liveness and readiness endpoints.

``/health/ready`` checks the review store and reports which collaborator
services the engine has been pointed at. Only the store decides the
overall status; collaborators are called per request and fail per request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from review_engine.config import ReviewEngineConfig
from review_engine.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Readiness report.

    Attributes:
        status: "ok" when the store answers, otherwise "unhealthy"
        database: "connected" or "disconnected"
        services: Collaborator name to "configured" or "missing";
            the event bus reports "disabled" when publishing is off
    """

    status: str
    database: str
    services: dict[str, str]


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory  # type: ignore[no-any-return]


def get_config(request: Request) -> ReviewEngineConfig:
    return request.app.state.config  # type: ignore[no-any-return]


def collaborator_status(config: ReviewEngineConfig) -> dict[str, str]:
    """Which collaborator endpoints are set, keyed by collaborator."""
    services = config.services

    def _state(url: str) -> str:
        return "configured" if url.strip().rstrip("/") else "missing"

    status = {
        "challenge": _state(services.challenge_api_url),
        "resources": _state(services.resource_api_url),
        "members": _state(services.member_api_url),
        "eventBus": _state(services.bus_api_url),
    }
    if not config.events.enabled:
        status["eventBus"] = "disabled"
    return status


async def check_database(session_factory: async_sessionmaker[AsyncSession]) -> bool:
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("readiness_database_unreachable", error=str(exc))
        return False
    return True


def create_health_router() -> APIRouter:
    """Create health check router.

    Routes:
        GET /health/ - Liveness
        GET /health/ready - Store check plus collaborator configuration
    """
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=HealthResponse)
    async def health() -> dict[str, Any]:
        return {"status": "ok"}

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
        config: ReviewEngineConfig = Depends(get_config),  # noqa: B008
    ) -> dict[str, Any]:
        services = collaborator_status(config)
        missing = sorted(name for name, state in services.items() if state == "missing")
        if missing:
            logger.warning("readiness_services_missing", services=missing)

        if not await check_database(session_factory):
            return {"status": "unhealthy", "database": "disconnected", "services": services}

        logger.debug("readiness_check_passed", services=services)
        return {"status": "ok", "database": "connected", "services": services}

    return router
