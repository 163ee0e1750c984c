"""Authentication endpoints: login, logout, registration and e-mail verification."""

from fastapi import APIRouter, Depends, Query
from starlette.responses import Response

from portal.api.deps import get_session, get_ticketing, passthrough
from portal.core.session import CookieSession
from portal.core.session_controller import logout as end_session
from portal.schemas import LoginRequest, LoginResponse, RegisterRequest, VerifyEmailRequest
from portal.services.auth import sign_in
from portal.services.ticketing import TicketingService

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    session: CookieSession = Depends(get_session),
    service: TicketingService = Depends(get_ticketing),
) -> LoginResponse:
    """
    Authenticates with the backend and stores the token in an HTTP-only
    cookie plus a readable profile cookie. The token itself is not returned.
    """
    auth = await sign_in(service, session, credentials.email, credentials.password)
    return LoginResponse(userId=auth.userId, email=auth.email, authorities=auth.authorities)


@router.post("/logout")
async def logout(session: CookieSession = Depends(get_session)) -> dict[str, str]:
    end_session(session)
    return {"message": "Logged out successfully"}


@router.post("/register")
async def register(
    user: RegisterRequest, service: TicketingService = Depends(get_ticketing)
) -> Response:
    return passthrough(await service.register(user.email, user.password))


@router.post("/verify-email")
async def verify_email(
    verification: VerifyEmailRequest, service: TicketingService = Depends(get_ticketing)
) -> Response:
    return passthrough(await service.verify_email(verification.email, verification.otp))


@router.post("/resend-otp")
async def resend_otp(
    email: str = Query(..., min_length=1),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    return passthrough(await service.resend_otp(email))
