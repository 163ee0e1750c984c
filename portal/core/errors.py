"""Error taxonomy for calls forwarded to the ticketing backend."""

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    APPLICATION = "APPLICATION"
    TRANSPORT = "TRANSPORT"


UNAUTHORIZED_MESSAGE = "Unauthorized"
SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."


class ForwardError(Exception):
    """
    Raised when a forwarded call did not succeed. Handled in one place by the
    application's exception handler, which decides between a redirect, an
    error page and a JSON error body.
    """

    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"<ForwardError(kind={self.kind.value}, status={self.status_code})>"


class PageRedirect(Exception):
    """Sends a page request elsewhere, e.g. a requester opening an admin page."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


class SessionStateError(RuntimeError):
    """An illegal session lifecycle transition was requested."""
