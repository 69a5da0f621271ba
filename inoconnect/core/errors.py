"""
Domain errors raised by the coordination services.

Each error carries the HTTP status the API layer renders it with and a stable
machine-readable code for clients.
"""
from typing import Any, Optional

from starlette import status


class InoConnectError(Exception):
    """Base class for state-machine and permission failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class NotFound(InoConnectError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Forbidden(InoConnectError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class AlreadyResolved(InoConnectError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_resolved"


class DuplicateRequest(InoConnectError):
    """A pending connection request already exists between the pair."""

    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_request"

    def __init__(self, message: Optional[str] = None, existing: Any = None):
        super().__init__(message)
        # Detached from its session; None when the unique index caught the duplicate on flush
        self.existing = existing


class AlreadyConnected(InoConnectError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_connected"


class AlreadyMember(InoConnectError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_member"


class AlreadyPending(InoConnectError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_pending"


class CapacityExceeded(InoConnectError):
    status_code = status.HTTP_409_CONFLICT
    code = "capacity_exceeded"


class EmptyMessage(InoConnectError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "empty_message"


class InvalidTarget(InoConnectError):
    """Self-referential or otherwise meaningless target."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_target"
