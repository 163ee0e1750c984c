"""Dependencies for API endpoints and pages."""

from typing import Any, Callable, TypeVar

from fastapi import Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.responses import Response

from portal.core.errors import UNAUTHORIZED_MESSAGE, ErrorKind, ForwardError, PageRedirect
from portal.core.forwarder import BackendClient
from portal.core.result import ForwardResult
from portal.core.session import CookieSession
from portal.schemas.pagination import Page
from portal.schemas.user import UserProfile, UserRole
from portal.services.ticketing import TicketingService
from portal.utils.logging_config import logger

M = TypeVar("M", bound=BaseModel)


def get_session(request: Request) -> CookieSession:
    """
    Dependency that retrieves the per-request session set by the session
    middleware.
    """
    session = getattr(request.state, "session", None)
    if session is None:
        raise HTTPException(
            status_code=500, detail="Session not found in request state."
        )
    return session


def get_backend(request: Request) -> BackendClient:
    """
    Dependency that returns the shared backend client created at startup.
    """
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(
            status_code=500, detail="Backend client is not initialized."
        )
    return backend


def get_ticketing(
    session: CookieSession = Depends(get_session),
    backend: BackendClient = Depends(get_backend),
) -> TicketingService:
    return TicketingService(backend, session)


def require_profile(session: CookieSession = Depends(get_session)) -> UserProfile:
    """
    Page guard: both the credential and the profile snapshot must be present,
    otherwise the browser is sent to the login page.
    """
    if not session.get_credential() or session.profile is None:
        raise ForwardError(
            ErrorKind.UNAUTHENTICATED, UNAUTHORIZED_MESSAGE, status.HTTP_401_UNAUTHORIZED
        )
    return session.profile


def require_roles(*roles: UserRole) -> Callable[..., UserProfile]:
    """Page guard for role-restricted pages; other roles go to the dashboard."""

    def dependency(profile: UserProfile = Depends(require_profile)) -> UserProfile:
        if profile.role not in roles:
            logger.info(f"Role {profile.role.value} may not open this page")
            raise PageRedirect("/dashboard")
        return profile

    return dependency


def passthrough(result: ForwardResult) -> Response:
    """
    Returns a successful backend body unchanged, or raises the error for the
    application's exception handler.
    """
    data = result.unwrap()
    if data is None or result.status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return JSONResponse(data, status_code=result.status_code)


def parse_as(model: type[M], data: Any) -> M:
    """Validates backend data for rendering; malformed data is a backend error."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error(f"Unexpected backend payload for {model.__name__}: {e}")
        raise ForwardError(
            ErrorKind.APPLICATION,
            "Unexpected response from the ticketing service",
            status.HTTP_502_BAD_GATEWAY,
        ) from e


def parse_page(model: type[M], data: Any, page: int, size: int) -> Page[M]:
    """Wraps a ticket or user listing in the paginated envelope."""
    try:
        return Page[model].from_payload(data, page, size)
    except ValidationError as e:
        logger.error(f"Unexpected backend listing for {model.__name__}: {e}")
        raise ForwardError(
            ErrorKind.APPLICATION,
            "Unexpected response from the ticketing service",
            status.HTTP_502_BAD_GATEWAY,
        ) from e
