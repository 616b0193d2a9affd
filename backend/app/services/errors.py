"""Domain error taxonomy raised by the service layer.

Each error is an `HTTPException` so the shared handlers in
`app.core.error_handling` render it without extra mapping.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    """Base class for terminal, request-scoped service failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class ValidationError(ServiceError):
    """Missing or malformed input; nothing was written."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid request"


class NotFoundError(ServiceError):
    """A referenced task, user, or message does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ForbiddenError(ServiceError):
    """Authenticated, but the actor's role or relationship does not permit this."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access forbidden"


class ConflictError(ServiceError):
    """The write collides with existing state, e.g. a duplicate account."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"
