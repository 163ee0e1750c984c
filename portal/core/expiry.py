"""
Classification of backend replies into success, application error or
session expiry.

Expiry is detected by matching human-readable backend messages against an
allow-list of marker phrases. This is fragile: the backend does not expose a
structured error code for token invalidity, so any change to its wording
must be mirrored here.
"""

import json
from typing import Any, List

from portal.core.errors import SESSION_EXPIRED_MESSAGE, ErrorKind
from portal.core.result import Err, ForwardResult, Ok

EXPIRY_MARKERS = (
    "jwt token is invalid or expired",
    "token is invalid",
    "token has expired",
    "authentication failed",
    "unauthorized access",
)

# "jwt" combined with any of these also counts as expiry.
JWT_QUALIFIERS = ("invalid", "expired", "malformed", "signature")


def is_session_expiry_message(text: str) -> bool:
    """
    Case-insensitive check of a single message (or raw body) for an expiry
    marker.
    """
    if not text:
        return False
    lowered = text.lower()
    if any(marker in lowered for marker in EXPIRY_MARKERS):
        return True
    return "jwt" in lowered and any(q in lowered for q in JWT_QUALIFIERS)


def extract_messages(payload: Any) -> List[str]:
    """
    Pulls the error messages out of a backend envelope.

    `messages` wins over `message`; both may be a list or a scalar. Non-string
    entries are dropped.
    """
    if not isinstance(payload, dict):
        return []
    messages = payload.get("messages") or payload.get("message")
    if isinstance(messages, list):
        return [m for m in messages if isinstance(m, str)]
    if isinstance(messages, str) and messages:
        return [messages]
    return []


def _parse_json(body: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(body)
    except ValueError:
        return False, None


def _expired(status_code: int) -> Err:
    return Err(ErrorKind.SESSION_EXPIRED, SESSION_EXPIRED_MESSAGE, status_code)


def classify(status_code: int, body: str, detect_expiry: bool = True) -> ForwardResult:
    """
    Turns a backend status and raw body into a tagged result.

    Args:
        status_code: HTTP status returned by the backend.
        body: The undecoded response text.
        detect_expiry: False for calls made without a credential, where
            there is no session that could have expired.

    Returns:
        ForwardResult: `Ok` with the decoded body, or `Err` tagged with
        SESSION_EXPIRED or APPLICATION.
    """
    is_json, payload = _parse_json(body) if body else (False, None)

    if 200 <= status_code < 300:
        if not body:
            return Ok(None, status_code)
        if not is_json:
            if detect_expiry and is_session_expiry_message(body):
                return _expired(status_code)
            return Ok(body, status_code)
        # The backend sometimes embeds an expiry notice in a 2xx payload.
        if detect_expiry and any(is_session_expiry_message(m) for m in extract_messages(payload)):
            return _expired(status_code)
        return Ok(payload, status_code)

    if not is_json:
        if detect_expiry and is_session_expiry_message(body):
            return _expired(status_code)
        return Err(
            ErrorKind.APPLICATION,
            body or f"HTTP error! status: {status_code}",
            status_code,
        )

    messages = extract_messages(payload)
    if detect_expiry and is_session_expiry_message(" | ".join(messages) or body):
        return _expired(status_code)
    message = "\n".join(messages) or body or f"HTTP error! status: {status_code}"
    return Err(ErrorKind.APPLICATION, message, status_code)
