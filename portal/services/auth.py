"""Login flow shared by the login page and the JSON login route."""

from fastapi import status
from pydantic import ValidationError

from portal.core.errors import ErrorKind, ForwardError
from portal.core.result import Err
from portal.core.session import CookieSession
from portal.schemas.auth import AuthResponse
from portal.services.ticketing import TicketingService
from portal.utils.logging_config import logger


async def sign_in(
    service: TicketingService, session: CookieSession, email: str, password: str
) -> AuthResponse:
    """
    Authenticates against the backend and persists the credential.

    Walks the session through AUTHENTICATING and on to AUTHENTICATED when the
    backend accepts, or back to ANONYMOUS (nothing persisted) when it rejects.

    Raises:
        ForwardError: The backend rejected the credentials, was unreachable,
            or replied without a token.
    """
    session.begin_login()
    result = await service.authenticate(email, password)
    if isinstance(result, Err):
        session.fail_login()
        logger.info(f"Login rejected for {email}: {result.message[:200]}")
        result.unwrap()

    try:
        auth = AuthResponse.model_validate(result.data)
        profile = auth.to_profile()
    except ValidationError as e:
        session.fail_login()
        logger.error(f"Unexpected authentication response: {e}")
        raise ForwardError(
            ErrorKind.APPLICATION,
            "Unexpected response from the authentication service",
            status.HTTP_502_BAD_GATEWAY,
        ) from e

    if not auth.token:
        session.fail_login()
        raise ForwardError(
            ErrorKind.APPLICATION,
            auth.message or "Authentication failed",
            status.HTTP_401_UNAUTHORIZED,
        )

    session.set_credential(auth.token, profile)
    logger.info(f"User {profile.id} signed in as {profile.role.value}")
    return auth
