"""Domain exceptions shared by the services and the HTTP layer.

Each exception carries the HTTP ``status_code`` and a short ``detail`` the
routers return to clients.  Services raise them; ``app.main`` installs a
single handler that renders them.
"""

from __future__ import annotations

from fastapi import status


class LinkAppError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "linkapp_error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class NotFoundError(LinkAppError):
    """Referenced user, link or chatroom does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "not_found"


class UnauthorizedError(LinkAppError):
    """Caller is not a participant of the link or chatroom."""

    status_code = status.HTTP_403_FORBIDDEN
    detail = "forbidden"


class InvalidCredentialsError(UnauthorizedError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "invalid email or password"


class InvalidStateError(LinkAppError):
    """Action violates the current state of a link, chatroom or user."""

    status_code = status.HTTP_409_CONFLICT
    detail = "invalid_state"


class ConflictError(InvalidStateError):
    """Record already exists (duplicate email, second chatroom for a link)."""

    detail = "conflict"


class NoMatchFoundError(LinkAppError):
    """No eligible candidate right now.  A normal empty result."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "no_match_found"


class TransientStoreError(LinkAppError):
    """Store timed out or could not be reached.  Safe to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "store_unavailable"
