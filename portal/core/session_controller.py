"""Session expiry and logout."""

from fastapi import status
from fastapi.responses import RedirectResponse

from portal.core.session import CookieSession, SessionState
from portal.settings import settings
from portal.utils.logging_config import logger


def expire_session(session: CookieSession) -> RedirectResponse:
    """
    Clears the credential and profile and sends the browser to the login page
    with a full navigation.

    Only the SESSION_EXPIRED verdict of the classifier leads here. Calling it
    for a session that is already anonymous changes nothing but still returns
    the redirect.
    """
    if session.state != SessionState.ANONYMOUS:
        if session.state == SessionState.AUTHENTICATED:
            session.mark_expired()
        logger.info("Backend reported an invalid or expired token, ending session")
        session.clear()
    return RedirectResponse(settings.LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)


def logout(session: CookieSession) -> None:
    """Explicit logout: AUTHENTICATED -> ANONYMOUS."""
    session.clear()
