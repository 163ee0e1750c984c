from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.responses import Response

from portal.api.deps import get_session
from portal.api.v1 import admin as admin_router
from portal.api.v1 import auth as auth_router
from portal.api.v1 import tickets as tickets_router
from portal.core.errors import (
    SESSION_EXPIRED_MESSAGE,
    UNAUTHORIZED_MESSAGE,
    ErrorKind,
    ForwardError,
    PageRedirect,
)
from portal.core.forwarder import BackendClient, check_backend_connection
from portal.core.session_controller import expire_session
from portal.middleware.session import session_middleware
from portal.settings import settings
from portal.utils.logging_config import logger
from portal.web import pages
from portal.web.templating import render

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle application startup and shutdown events.
    """
    app.state.backend = BackendClient()
    await check_backend_connection(app.state.backend)
    logger.info("HELPDESK PORTAL IS READY")

    yield

    try:
        await app.state.backend.close()
    except Exception as e:
        logger.warning(f"Error closing backend client: {e}")


app = FastAPI(
    lifespan=lifespan,
    title="Helpdesk Portal",
    description="Web front end for the support ticketing service",
    debug=settings.DEBUG,
)

app.middleware("http")(session_middleware)
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# Include routers
app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
app.include_router(tickets_router.router, prefix="/api/tickets", tags=["Tickets"])
app.include_router(admin_router.router, prefix="/api/admin", tags=["Admin"])
app.include_router(pages.router)


def _wants_json(request: Request) -> bool:
    return request.url.path.startswith("/api/")


@app.exception_handler(ForwardError)
async def forward_error_handler(request: Request, exc: ForwardError) -> Response:
    """
    Single place where failed backend calls become responses.

    SESSION_EXPIRED ends the session: pages get a full redirect to the login
    page, JSON callers get a 401 naming the redirect target. The other kinds
    stay local to the caller.
    """
    session = get_session(request)

    if exc.kind == ErrorKind.SESSION_EXPIRED:
        redirect = expire_session(session)
        if _wants_json(request):
            return JSONResponse(
                {
                    "error": SESSION_EXPIRED_MESSAGE,
                    "code": exc.kind.value,
                    "redirect": settings.LOGIN_PATH,
                },
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
        return redirect

    if exc.kind == ErrorKind.UNAUTHENTICATED:
        if _wants_json(request):
            return JSONResponse(
                {"error": UNAUTHORIZED_MESSAGE, "code": exc.kind.value},
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
        return RedirectResponse(settings.LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)

    status_code = exc.status_code or status.HTTP_502_BAD_GATEWAY
    if exc.kind == ErrorKind.TRANSPORT or status_code < 400:
        status_code = status.HTTP_502_BAD_GATEWAY
    if _wants_json(request):
        return JSONResponse({"error": exc.message}, status_code=status_code)
    return render(
        request,
        "error.html",
        {"message": exc.message, "status_code": status_code},
        status_code=status_code,
    )


@app.exception_handler(PageRedirect)
async def page_redirect_handler(request: Request, exc: PageRedirect) -> RedirectResponse:
    return RedirectResponse(exc.location, status_code=status.HTTP_303_SEE_OTHER)


@app.get("/health")
def read_health() -> dict[str, str]:
    return {"message": "Hello from Helpdesk Portal!"}
