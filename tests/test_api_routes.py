import json

import pytest

from conftest import cleared_cookies, make_token, set_cookie_headers
from portal.schemas import UserRole
from portal.settings import settings

AUTH_REPLY = {
    "token": "header.payload.signature",
    "email": "user@example.com",
    "userId": 7,
    "authorities": ["ROLE_USER"],
}


@pytest.mark.asyncio
async def test_login_stores_the_token_in_cookies(client, backend_stub):
    """
    Tests the JSON login: the token goes into cookies, never into the body.
    """
    # 1. Backend accepts the credentials
    backend_stub.reply("POST", "/user/authenticate", json=AUTH_REPLY)

    # 2. Log in through the portal
    response = await client.post(
        "/api/auth/login", json={"email": "user@example.com", "password": "secret"}
    )

    # 3. Body carries the identity only
    assert response.status_code == 200
    assert response.json() == {
        "userId": 7,
        "email": "user@example.com",
        "authorities": ["ROLE_USER"],
    }
    assert "header.payload.signature" not in response.text

    # 4. Both cookies were issued
    headers = set_cookie_headers(response)
    token_header = next(h for h in headers if h.startswith(f"{settings.TOKEN_COOKIE_NAME}="))
    assert token_header.startswith(f"{settings.TOKEN_COOKIE_NAME}=header.payload.signature")
    assert "httponly" in token_header.lower()
    assert any(h.startswith(f"{settings.PROFILE_COOKIE_NAME}=") for h in headers)

    # 5. The backend saw the credentials without a bearer header
    sent = backend_stub.requests[0]
    assert json.loads(sent.content) == {"email": "user@example.com", "password": "secret"}
    assert "Authorization" not in sent.headers


@pytest.mark.asyncio
async def test_rejected_login_is_not_a_session_expiry(client, backend_stub):
    backend_stub.reply(
        "POST", "/user/authenticate", status_code=401, json={"message": "Authentication failed"}
    )

    response = await client.post(
        "/api/auth/login", json={"email": "user@example.com", "password": "wrong"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication failed"}
    assert set_cookie_headers(response) == []


@pytest.mark.asyncio
async def test_login_requires_both_fields(client, backend_stub):
    response = await client.post("/api/auth/login", json={"email": "user@example.com"})
    assert response.status_code == 422
    assert backend_stub.requests == []


@pytest.mark.asyncio
async def test_logout_clears_cookies(client, sign_in_as):
    sign_in_as(client)

    response = await client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}
    assert sorted(cleared_cookies(response)) == sorted(
        [settings.TOKEN_COOKIE_NAME, settings.PROFILE_COOKIE_NAME]
    )


@pytest.mark.asyncio
async def test_register_passes_the_backend_reply_through(client, backend_stub):
    backend_stub.reply(
        "POST", "/users/register", status_code=201, json={"message": "Check your inbox"}
    )

    response = await client.post(
        "/api/auth/register", json={"email": "new@example.com", "password": "secret"}
    )

    assert response.status_code == 201
    assert response.json() == {"message": "Check your inbox"}


@pytest.mark.asyncio
async def test_ticket_listing_is_passed_through_unchanged(client, backend_stub, sign_in_as):
    listing = {
        "tickets": [{"id": 1, "title": "Printer jam", "status": "NEW"}],
        "currentPage": 0,
        "totalItems": 1,
        "totalPages": 1,
    }
    backend_stub.reply("GET", "/tickets", json=listing)
    sign_in_as(client)

    response = await client.get("/api/tickets", params={"page": "0", "status": "NEW", "foo": "bar"})

    assert response.status_code == 200
    assert response.json() == listing
    params = backend_stub.requests[0].url.params
    assert dict(params) == {"page": "0", "status": "NEW"}


@pytest.mark.asyncio
async def test_not_found_stays_an_application_error(client, backend_stub, sign_in_as):
    backend_stub.reply("GET", "/tickets/99", status_code=404, json={"message": "Ticket not found"})
    sign_in_as(client)

    response = await client.get("/api/tickets/99")

    assert response.status_code == 404
    assert response.json() == {"error": "Ticket not found"}
    assert cleared_cookies(response) == []


@pytest.mark.asyncio
async def test_expiry_in_a_success_reply_ends_the_session(client, backend_stub, sign_in_as):
    """
    Tests that a 200 carrying an expiry notice clears the session and tells
    the browser where to go.
    """
    # 1. Backend answers 200 but says the token is no good
    backend_stub.reply("GET", "/tickets/1", json={"message": "JWT token is invalid or expired"})
    sign_in_as(client)

    # 2. Call through the portal
    response = await client.get("/api/tickets/1")

    # 3. Caller gets the expiry verdict with the redirect target
    assert response.status_code == 401
    assert response.json() == {
        "error": "Session expired. Please login again.",
        "code": "SESSION_EXPIRED",
        "redirect": settings.LOGIN_PATH,
    }

    # 4. Both cookies are deleted
    assert sorted(cleared_cookies(response)) == sorted(
        [settings.TOKEN_COOKIE_NAME, settings.PROFILE_COOKIE_NAME]
    )


@pytest.mark.asyncio
async def test_calls_without_a_session_are_unauthorized(client, backend_stub):
    response = await client.get("/api/tickets")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized", "code": "UNAUTHENTICATED"}
    assert backend_stub.requests == []


@pytest.mark.asyncio
async def test_unreachable_backend_is_a_bad_gateway(client, backend_stub, sign_in_as):
    backend_stub.fail("GET", "/tickets/1")
    sign_in_as(client)

    response = await client.get("/api/tickets/1")

    assert response.status_code == 502
    assert "Could not reach the ticketing service" in response.json()["error"]


@pytest.mark.asyncio
async def test_ticket_status_update_sends_the_new_status(client, backend_stub, sign_in_as):
    backend_stub.reply("PATCH", "/tickets/3/status", json={"id": 3, "status": "RESOLVED"})
    sign_in_as(client, role=UserRole.SUPPORT_AGENT)

    response = await client.patch("/api/tickets/3/status", json={"status": "RESOLVED"})

    assert response.status_code == 200
    assert json.loads(backend_stub.requests[0].content) == {"status": "RESOLVED"}


@pytest.mark.asyncio
async def test_assignable_agents_is_not_read_as_a_ticket_id(client, backend_stub, sign_in_as):
    backend_stub.reply("GET", "/tickets/assignable-agents", json=[{"id": 2, "email": "a@x.io"}])
    sign_in_as(client, role=UserRole.ADMIN)

    response = await client.get("/api/tickets/assignable-agents")

    assert response.json() == [{"id": 2, "email": "a@x.io"}]


@pytest.mark.asyncio
async def test_deleting_a_comment_returns_no_content(client, backend_stub, sign_in_as):
    backend_stub.reply("DELETE", "/tickets/3/comments/5", status_code=204)
    sign_in_as(client)

    response = await client.delete("/api/tickets/3/comments/5")

    assert response.status_code == 204


@pytest.mark.asyncio
async def test_admin_delete_user_reports_success(client, backend_stub, sign_in_as):
    backend_stub.reply("DELETE", "/admin/users/12", status_code=204)
    sign_in_as(client, role=UserRole.ADMIN)

    response = await client.delete("/api/admin/users/12")

    assert response.json() == {"success": True}


@pytest.mark.asyncio
async def test_auth_diagnostics_without_a_token(client):
    response = await client.get("/api/admin/test-auth")

    assert response.status_code == 401
    assert response.json() == {
        "error": "No JWT token found",
        "hasToken": False,
        "hasUserData": False,
    }


@pytest.mark.asyncio
async def test_auth_diagnostics_report_the_backend_probe(client, backend_stub, sign_in_as):
    backend_stub.reply("GET", "/admin/users", status_code=403, json={"message": "Access denied"})
    token = make_token("admin@example.com")
    sign_in_as(client, role=UserRole.ADMIN, email="admin@example.com", token=token)

    response = await client.get("/api/admin/test-auth")

    body = response.json()
    assert response.status_code == 200
    assert body["hasToken"] is True
    assert body["hasUserData"] is True
    assert body["tokenLength"] == len(token)
    assert body["claims"]["sub"] == "admin@example.com"
    assert body["backendResponse"] == {
        "ok": False,
        "status": 403,
        "kind": "APPLICATION",
        "message": "Access denied",
    }
    assert token not in response.text


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/api/tickets/%3Fsize=1000"),
        ("DELETE", "/api/tickets/%2E%2E/comments/5"),
        ("DELETE", "/api/tickets/3/comments/x%3Fforce=true"),
        ("DELETE", "/api/admin/users/abc"),
    ],
)
async def test_non_numeric_ids_never_reach_the_backend(client, backend_stub, sign_in_as, method, path):
    """
    Tests that an id segment which is not a number is rejected before any
    backend URL is built from it.
    """
    # 1. A signed-in caller whose token would be forwarded
    sign_in_as(client, role=UserRole.ADMIN)

    # 2. Request with a segment that would change the backend path
    response = await client.request(method, path)

    # 3. Rejected by validation, backend never contacted
    assert response.status_code == 422
    assert backend_stub.requests == []


@pytest.mark.asyncio
async def test_audit_logs_are_validated_and_passed_through(client, backend_stub, sign_in_as):
    entries = [
        {
            "id": 1,
            "action": "STATUS_CHANGED",
            "entityType": "TICKET",
            "entityId": 3,
            "userId": 21,
            "timestamp": "2024-03-01T09:00:00",
        }
    ]
    backend_stub.reply("GET", "/tickets/3/audit-logs", json=entries)
    sign_in_as(client, role=UserRole.SUPPORT_AGENT)

    response = await client.get("/api/tickets/3/audit-logs")

    assert response.status_code == 200
    assert response.json() == entries


@pytest.mark.asyncio
async def test_malformed_audit_log_is_a_bad_gateway(client, backend_stub, sign_in_as):
    backend_stub.reply("GET", "/tickets/3/audit-logs", json=[{"id": 1, "entityType": "TICKET"}])
    sign_in_as(client, role=UserRole.SUPPORT_AGENT)

    response = await client.get("/api/tickets/3/audit-logs")

    assert response.status_code == 502
    assert response.json() == {"error": "Unexpected response from the ticketing service"}


@pytest.mark.asyncio
async def test_rejected_relogin_signs_the_previous_user_out(client, backend_stub, sign_in_as):
    backend_stub.reply(
        "POST", "/user/authenticate", status_code=401, json={"message": "Authentication failed"}
    )
    sign_in_as(client)

    response = await client.post(
        "/api/auth/login", json={"email": "other@example.com", "password": "wrong"}
    )

    assert response.status_code == 401
    assert sorted(cleared_cookies(response)) == sorted(
        [settings.TOKEN_COOKIE_NAME, settings.PROFILE_COOKIE_NAME]
    )
