from typing import Awaitable, Callable

from fastapi import Request
from starlette.responses import Response

from portal.core.session import CookieSession


async def session_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """
    FastAPI middleware that gives every request an explicit session object.

    The session is built from the inbound cookies and stored in
    `request.state.session` for downstream dependencies. Once the route (or
    an exception handler) has produced a response, the session's pending
    cookie changes are written onto it, so a redirect raised deep inside a
    page still clears or sets the credential.
    """
    session = CookieSession(request.cookies)
    request.state.session = session
    response = await call_next(request)
    session.apply(response)
    return response
