"""
Authenticated request forwarding to the ticketing backend.

Every server-rendered page and every `/api` route reaches the backend through
`BackendClient.forward`, which attaches the session's bearer token, issues
one HTTP call and hands the reply to the classifier. Nothing is retried.
"""

import asyncio
from typing import Any, Awaitable, List, Mapping, Optional

import httpx

from portal.core.errors import UNAUTHORIZED_MESSAGE, ErrorKind
from portal.core.expiry import classify
from portal.core.result import Err, ForwardResult
from portal.core.session import CookieSession, normalize_token
from portal.settings import settings
from portal.utils.logging_config import logger, token_snippet


class BackendClient:
    """Thin wrapper around one shared `httpx.AsyncClient`."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        client_kwargs: dict[str, Any] = {
            "base_url": base_url or settings.backend_base_url,
        }
        timeout = timeout if timeout is not None else settings.BACKEND_TIMEOUT_SECONDS
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    @staticmethod
    def auth_headers(token: Optional[str]) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        normalized = normalize_token(token)
        if normalized:
            headers["Authorization"] = f"Bearer {normalized}"
        return headers

    async def forward(
        self,
        path: str,
        method: str = "GET",
        *,
        session: Optional[CookieSession] = None,
        json: Any = None,
        params: Optional[Mapping[str, str]] = None,
        authenticated: bool = True,
    ) -> ForwardResult:
        """
        Forwards one call to the backend.

        Args:
            path: Backend path, e.g. "/tickets/42".
            method: HTTP method.
            session: The caller's session; its credential becomes the bearer token.
            json: Optional JSON body.
            params: Optional query parameters.
            authenticated: False for the public auth endpoints (login, register).

        Returns:
            ForwardResult: `Ok` with the decoded body, or `Err` tagged with
            UNAUTHENTICATED, SESSION_EXPIRED, APPLICATION or TRANSPORT.
        """
        token = session.get_credential() if session is not None else None
        if authenticated and not token:
            logger.info(f"No credential for {method} {path}, not contacting backend")
            return Err(ErrorKind.UNAUTHENTICATED, UNAUTHORIZED_MESSAGE, 401)

        headers = self.auth_headers(token if authenticated else None)
        if token and authenticated:
            logger.debug(f"Backend request -> {method} {path} token={token_snippet(token)}")
        else:
            logger.debug(f"Backend request -> {method} {path} auth=False")

        try:
            response = await self._client.request(
                method, path, headers=headers, json=json, params=params
            )
        except httpx.HTTPError as e:
            logger.error(f"Backend call {method} {path} failed: {e!r}")
            return Err(
                ErrorKind.TRANSPORT,
                f"Could not reach the ticketing service: {e.__class__.__name__}",
                None,
            )

        logger.info(f"Backend response <- {response.status_code} for {method} {path}")
        if response.status_code >= 400:
            logger.debug(f"Backend error body preview: {response.text[:200]}")

        return classify(response.status_code, response.text, detect_expiry=authenticated)

    async def ping(self) -> httpx.Response:
        return await self._client.get("/")

    async def close(self) -> None:
        await self._client.aclose()


async def fetch_all(*calls: Awaitable[ForwardResult]) -> List[ForwardResult] | Err:
    """
    Runs independent forwarded calls concurrently and joins them.

    Fail-fast: a session-expired result takes precedence over everything,
    otherwise the first error in argument order is returned. The page either
    gets every result or exactly one deterministic error.
    """
    results = await asyncio.gather(*calls)
    errors = [r for r in results if isinstance(r, Err)]
    for error in errors:
        if error.is_session_expired:
            return error
    if errors:
        return errors[0]
    return list(results)


async def check_backend_connection(client: BackendClient) -> None:
    """
    Probes the backend base URL at startup. A failure is logged, not raised:
    the portal still serves its login page while the backend is down.
    """
    try:
        response = await client.ping()
        logger.info(f"Backend reachable at {client.base_url} (status {response.status_code})")
    except httpx.HTTPError as e:
        logger.warning(f"Backend not reachable at {client.base_url}: {e!r}")
