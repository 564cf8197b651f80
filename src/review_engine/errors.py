"""Error taxonomy for Review Engine.

Every failure the engine surfaces carries a stable machine-readable code
plus structured details (offending ids) so callers can build messages
without string matching. The ``kind`` groups codes into the classes the
transport layer maps onto responses:

    NOT_FOUND   - entity absent, never retried
    VALIDATION  - caller error, never retried
    FORBIDDEN   - authorization denial with a reason, never logged as error
    CONFLICT    - uniqueness violation (duplicate review or item)
    DOWNSTREAM  - external service or store failure, wrapped generically
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(enum.Enum):
    """Classification of engine errors."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    DOWNSTREAM = "downstream"


class ReviewEngineError(Exception):
    """Base exception for all engine errors.

    Attributes:
        code: Stable error code (e.g. ``REVIEW_NOT_FOUND``).
        message: Human readable description.
        details: Structured context such as offending ids.
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(
        self,
        code: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message or code.replace("_", " ").capitalize()
        self.details = details or {}
        super().__init__(f"{self.code}: {self.message}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for a response body."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(ReviewEngineError):
    """Raised when a referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND


class InvalidRequestError(ReviewEngineError):
    """Raised when the request itself is malformed or inconsistent."""

    kind = ErrorKind.VALIDATION


class ForbiddenError(ReviewEngineError):
    """Raised when the actor is not permitted to perform the operation."""

    kind = ErrorKind.FORBIDDEN


class ConflictError(ReviewEngineError):
    """Raised when a create would violate a uniqueness rule."""

    kind = ErrorKind.CONFLICT


class DownstreamError(ReviewEngineError):
    """Raised when an external collaborator or the store fails."""

    kind = ErrorKind.DOWNSTREAM

    def to_dict(self) -> dict[str, Any]:
        # Upstream detail stays in the logs
        return {
            "code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": {},
        }
