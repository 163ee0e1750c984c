"""Administrator endpoints for managing support staff accounts."""

from typing import Any

import jwt
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from jwt.exceptions import PyJWTError
from starlette.responses import Response

from portal.api.deps import get_backend, get_session, get_ticketing, passthrough
from portal.core.forwarder import BackendClient
from portal.core.result import Err
from portal.core.session import CookieSession
from portal.schemas import CreateSupportAgentRequest
from portal.services.ticketing import TicketingService
from portal.utils.logging_config import logger

router = APIRouter()

PAGING_PARAMS = ("page", "size", "sortBy", "sortDir")


@router.get("/users")
async def list_users(
    request: Request, service: TicketingService = Depends(get_ticketing)
) -> Response:
    params = {k: v for k, v in request.query_params.items() if k in PAGING_PARAMS and v}
    return passthrough(await service.list_users(params or None))


@router.post("/users")
async def create_user(
    user: CreateSupportAgentRequest, service: TicketingService = Depends(get_ticketing)
) -> Response:
    """Creates a support agent or administrator account."""
    return passthrough(await service.create_support_agent(user.model_dump()))


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int, service: TicketingService = Depends(get_ticketing)
) -> dict[str, bool]:
    (await service.delete_user(user_id)).unwrap()
    return {"success": True}


def _unverified_claims(token: str) -> dict[str, Any]:
    """
    Reads the token's claims for display only. The signature is not checked:
    the portal never decides validity itself, the backend does.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except PyJWTError as e:
        return {"error": f"Unreadable token: {e.__class__.__name__}"}
    return {k: claims.get(k) for k in ("sub", "iat", "exp") if k in claims}


@router.get("/test-auth")
async def test_auth(
    session: CookieSession = Depends(get_session),
    backend: BackendClient = Depends(get_backend),
) -> JSONResponse:
    """
    Diagnostic endpoint: reports what credential the portal holds and how the
    backend answers a probe with it. Never echoes the token.
    """
    token = session.get_credential()
    if not token:
        return JSONResponse(
            {
                "error": "No JWT token found",
                "hasToken": False,
                "hasUserData": session.profile is not None,
            },
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    probe = await backend.forward("/admin/users", session=session)
    logger.info(f"Auth probe against backend: ok={probe.ok}")
    if isinstance(probe, Err) and probe.is_session_expired:
        probe.unwrap()
    backend_report: dict[str, Any] = {"ok": probe.ok, "status": probe.status_code}
    if isinstance(probe, Err):
        backend_report["kind"] = probe.kind.value
        backend_report["message"] = probe.message[:200]

    return JSONResponse(
        {
            "hasToken": True,
            "hasUserData": session.profile is not None,
            "tokenLength": len(token),
            "claims": _unverified_claims(token),
            "backendResponse": backend_report,
            "apiBaseUrl": backend.base_url,
        }
    )
