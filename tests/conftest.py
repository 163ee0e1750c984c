
import sys
import time
from pathlib import Path

import httpx
import jwt
import pytest
import pytest_asyncio

# Bootstrap to ensure tests can import portal modules without installing the package.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portal.core.forwarder import BackendClient  # noqa: E402
from portal.core.session import encode_profile  # noqa: E402
from portal.main import app  # noqa: E402
from portal.schemas import UserProfile, UserRole  # noqa: E402
from portal.settings import settings  # noqa: E402

BACKEND_URL = "http://backend.test"
SIGNING_KEY = "portal-test-signing-key-0123456789abcdef"


def pytest_configure(config):
    config.pluginmanager.unregister(name="anyio")


class BackendStub:
    """
    Canned replies for the ticketing backend, keyed by method and path.
    Every request that reaches it is recorded.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def reply(self, method, path, status_code=200, json=None, text=None):
        if json is not None:
            self.routes[(method, path)] = (status_code, {"json": json})
        else:
            self.routes[(method, path)] = (status_code, {"text": text or ""})

    def fail(self, method, path):
        self.routes[(method, path)] = (None, {})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, kwargs = self.routes.get(
            (request.method, request.url.path),
            (404, {"json": {"message": "No canned reply"}}),
        )
        if status_code is None:
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(status_code, **kwargs)

    def paths(self):
        return [(r.method, r.url.path) for r in self.requests]


def make_token(subject="user@example.com", ttl=3600):
    now = int(time.time())
    return jwt.encode({"sub": subject, "iat": now, "exp": now + ttl}, SIGNING_KEY, algorithm="HS256")


def make_profile(role=UserRole.USER, user_id="7", email="user@example.com"):
    return UserProfile(id=user_id, email=email, role=role)


@pytest.fixture
def backend_stub():
    return BackendStub()


@pytest_asyncio.fixture
async def backend(backend_stub):
    """A real BackendClient whose transport is the stub."""
    client = BackendClient(base_url=BACKEND_URL, transport=httpx.MockTransport(backend_stub.handle))
    yield client
    await client.close()


@pytest_asyncio.fixture
async def client(backend):
    """An HTTP client talking to the portal in-process."""
    app.state.backend = backend
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as ac:
        yield ac
    app.state.backend = None


@pytest.fixture
def sign_in_as():
    """Puts a session credential and profile snapshot into a client's cookie jar."""

    def _sign_in(ac, role=UserRole.USER, user_id="7", email="user@example.com", token=None):
        ac.cookies.set(settings.TOKEN_COOKIE_NAME, token or make_token(email))
        ac.cookies.set(
            settings.PROFILE_COOKIE_NAME,
            encode_profile(make_profile(role, user_id, email)),
        )

    return _sign_in


def set_cookie_headers(response):
    return response.headers.get_list("set-cookie")


def cleared_cookies(response):
    """Names of cookies the response deletes."""
    return [
        h.split("=", 1)[0]
        for h in set_cookie_headers(response)
        if "max-age=0" in h.lower()
    ]
