"""FastAPI dependencies shared by the review routes.

The upstream gateway authenticates callers and forwards their identity in
``X-Actor-*`` headers; this module turns those headers into an Actor and
binds it to the request's log context.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import Header, Request

from review_engine.engine.roles import Actor
from review_engine.logging import bind_request_context

if TYPE_CHECKING:
    from review_engine.engine.service import ReviewService

TRUE_VALUES = frozenset({"1", "true", "yes"})


def get_review_service(request: Request) -> ReviewService:
    """Dependency that retrieves the review service from app state."""
    return request.app.state.review_service  # type: ignore[no-any-return]


def parse_roles(header: str | None) -> tuple[str, ...]:
    """Split a comma separated role header, dropping blanks."""
    if not header:
        return ()
    return tuple(role.strip() for role in header.split(",") if role.strip())


def get_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
    x_actor_handle: Annotated[str | None, Header()] = None,
    x_actor_roles: Annotated[str | None, Header()] = None,
    x_actor_machine: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the calling Actor from gateway headers."""
    actor = Actor(
        user_id=x_actor_id or None,
        handle=x_actor_handle or None,
        roles=parse_roles(x_actor_roles),
        is_machine=(x_actor_machine or "").strip().lower() in TRUE_VALUES,
    )
    bind_request_context(actor_id=actor.audit_id)
    return actor
