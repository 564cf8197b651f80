"""FastAPI application factory for Review Engine.

This module provides the application factory that creates and configures
a FastAPI application with:
- CORS middleware for cross-origin requests
- Request logging middleware with correlation IDs
- Database, service client and ReviewService lifecycle management
- Mapping of engine errors onto HTTP responses
- Health and readiness endpoints

Example usage:
    >>> from review_engine.config import ReviewEngineConfig
    >>> from review_engine.web.app import create_app
    >>>
    >>> app = create_app(ReviewEngineConfig())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi import status as http_status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from review_engine import __version__
from review_engine.config import ReviewEngineConfig
from review_engine.database.connection import get_engine, get_session_factory
from review_engine.engine.events import CompletionPublisher
from review_engine.engine.service import ReviewService
from review_engine.errors import ErrorKind, ReviewEngineError
from review_engine.integrations.challenge import ChallengeClient
from review_engine.integrations.event_bus import EventBusClient
from review_engine.integrations.members import MemberClient
from review_engine.integrations.resources import ResourceClient
from review_engine.logging import get_logger
from review_engine.web.middleware import RequestLoggingMiddleware
from review_engine.web.routes.health import create_health_router
from review_engine.web.routes.review_items import create_review_items_router
from review_engine.web.routes.reviews import create_reviews_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: http_status.HTTP_400_BAD_REQUEST,
    ErrorKind.FORBIDDEN: http_status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: http_status.HTTP_409_CONFLICT,
    ErrorKind.DOWNSTREAM: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the store, service clients and ReviewService; tear them down on exit."""
    config: ReviewEngineConfig = app.state.config
    services = config.services

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine = get_engine(config.database)
    session_factory = get_session_factory(engine)

    challenge_client = ChallengeClient(
        services.challenge_api_url, services.auth_token, services.timeout_seconds
    )
    resource_client = ResourceClient(
        services.resource_api_url, services.auth_token, services.timeout_seconds
    )
    member_client = MemberClient(
        services.member_api_url, services.auth_token, services.timeout_seconds
    )
    bus_client = EventBusClient(
        services.bus_api_url,
        originator=config.events.originator,
        auth_token=services.auth_token,
        timeout_seconds=services.timeout_seconds,
    )

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.review_service = ReviewService(
        session_factory,
        challenge_client,
        resource_client,
        member_client=member_client,
        publisher=CompletionPublisher(config.events, bus_client),
        submitter_role_id=config.roles.submitter_role_id,
    )

    logger.info(
        "database_pool_initialized",
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )

    yield

    logger.info("app_shutdown_begin")
    for client in (challenge_client, resource_client, member_client, bus_client):
        await client.close()
    await engine.dispose()
    logger.info("database_pool_disposed")


async def handle_engine_error(request: Request, exc: ReviewEngineError) -> JSONResponse:
    """Translate an engine error into a JSON error response."""
    status_code = STATUS_BY_KIND.get(exc.kind, http_status.HTTP_500_INTERNAL_SERVER_ERROR)
    if exc.kind == ErrorKind.DOWNSTREAM:
        logger.error(
            "request_downstream_error",
            path=request.url.path,
            code=exc.code,
            details=exc.details,
        )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(config: ReviewEngineConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Optional ReviewEngineConfig. If None, creates default config.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = ReviewEngineConfig()

    app = FastAPI(
        title="Review Engine",
        version=__version__,
        description="Review lifecycle and visibility authorization service",
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(ReviewEngineError, handle_engine_error)  # type: ignore[arg-type]

    app.include_router(create_health_router())
    app.include_router(create_reviews_router())
    app.include_router(create_review_items_router())

    logger.info(
        "app_created",
        cors_origins=config.web.cors_origins,
        version=__version__,
    )

    return app
