"""
Cookie-backed session for one request.

The bearer token lives in an HTTP-only cookie; a profile snapshot lives next
to it in a cookie the browser's scripts can read. Both are owned by the
browser: this object only reads them from the inbound request and records
the changes to write onto the outgoing response.
"""

import enum
import json
from typing import Mapping, Optional
from urllib.parse import quote, unquote

from pydantic import ValidationError
from starlette.responses import Response

from portal.core.errors import SessionStateError
from portal.schemas.user import UserProfile
from portal.settings import Settings, settings
from portal.utils.logging_config import logger

BEARER_PREFIX = "Bearer "


class SessionState(str, enum.Enum):
    ANONYMOUS = "ANONYMOUS"
    AUTHENTICATING = "AUTHENTICATING"
    AUTHENTICATED = "AUTHENTICATED"
    EXPIRED = "EXPIRED"


_TRANSITIONS = {
    SessionState.ANONYMOUS: {SessionState.AUTHENTICATING},
    SessionState.AUTHENTICATING: {SessionState.AUTHENTICATED, SessionState.ANONYMOUS},
    SessionState.AUTHENTICATED: {
        SessionState.EXPIRED,
        SessionState.ANONYMOUS,
        SessionState.AUTHENTICATING,
    },
    SessionState.EXPIRED: {SessionState.ANONYMOUS},
}


def normalize_token(raw: Optional[str]) -> Optional[str]:
    """
    Returns the bare JWT from a cookie value.

    The value may be URL-encoded and may carry one or more "Bearer " prefixes;
    all of them are removed so the caller adds exactly one.
    """
    if not raw:
        return None
    token = unquote(raw).strip()
    while token == BEARER_PREFIX.strip() or token.startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX) :].lstrip()
    return token or None


def encode_profile(profile: UserProfile) -> str:
    return quote(json.dumps(profile.model_dump(mode="json")))


def decode_profile(raw: Optional[str]) -> Optional[UserProfile]:
    if not raw:
        return None
    try:
        return UserProfile.model_validate_json(unquote(raw))
    except ValidationError as e:
        logger.warning(f"Ignoring unreadable profile cookie: {e.error_count()} error(s)")
        return None


class CookieSession:
    """
    Explicit per-request session with a narrow interface:
    `get_credential()`, `set_credential()` and `clear()`.
    """

    def __init__(self, cookies: Mapping[str, str], config: Settings = settings):
        self._config = config
        self._token = normalize_token(cookies.get(config.TOKEN_COOKIE_NAME))
        self._profile = decode_profile(cookies.get(config.PROFILE_COOKIE_NAME))
        self._state = (
            SessionState.AUTHENTICATED if self._token else SessionState.ANONYMOUS
        )
        # Last pending cookie operation: "set", "clear" or None.
        self._pending: Optional[str] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    @property
    def is_authenticated(self) -> bool:
        return self._state == SessionState.AUTHENTICATED and self._token is not None

    def get_credential(self) -> Optional[str]:
        return self._token

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise SessionStateError(
                f"Illegal session transition {self._state.value} -> {target.value}"
            )
        logger.debug(f"Session {self._state.value} -> {target.value}")
        self._state = target

    def begin_login(self) -> None:
        self._transition(SessionState.AUTHENTICATING)

    def fail_login(self) -> None:
        """
        Backend rejected the login; nothing is persisted. A rejected re-login
        also drops the cookies of the session it was replacing.
        """
        self._transition(SessionState.ANONYMOUS)
        if self._token is not None or self._profile is not None:
            self._pending = "clear"
        self._token = None
        self._profile = None

    def set_credential(self, token: str, profile: UserProfile) -> None:
        """Persists the credential and profile after the backend accepted a login."""
        normalized = normalize_token(token)
        if not normalized:
            raise ValueError("Cannot store an empty credential")
        self._transition(SessionState.AUTHENTICATED)
        self._token = normalized
        self._profile = profile
        self._pending = "set"

    def mark_expired(self) -> None:
        self._transition(SessionState.EXPIRED)

    def clear(self) -> None:
        """
        Drops the credential and profile. Clearing an already anonymous
        session only re-issues the cookie deletion.
        """
        if self._state != SessionState.ANONYMOUS:
            self._transition(SessionState.ANONYMOUS)
        self._token = None
        self._profile = None
        self._pending = "clear"

    def apply(self, response: Response) -> None:
        """Writes the pending cookie changes onto the outgoing response."""
        cfg = self._config
        if self._pending == "set" and self._token and self._profile:
            response.set_cookie(
                cfg.TOKEN_COOKIE_NAME,
                self._token,
                max_age=cfg.SESSION_MAX_AGE_SECONDS,
                path="/",
                secure=cfg.cookie_secure,
                httponly=True,
                samesite=cfg.COOKIE_SAMESITE,
            )
            response.set_cookie(
                cfg.PROFILE_COOKIE_NAME,
                encode_profile(self._profile),
                max_age=cfg.SESSION_MAX_AGE_SECONDS,
                path="/",
                secure=cfg.cookie_secure,
                httponly=False,
                samesite=cfg.COOKIE_SAMESITE,
            )
        elif self._pending == "clear":
            for name, httponly in (
                (cfg.TOKEN_COOKIE_NAME, True),
                (cfg.PROFILE_COOKIE_NAME, False),
            ):
                response.delete_cookie(
                    name,
                    path="/",
                    secure=cfg.cookie_secure,
                    httponly=httponly,
                    samesite=cfg.COOKIE_SAMESITE,
                )
