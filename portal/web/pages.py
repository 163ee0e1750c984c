"""
Server-rendered pages.

Every page fetches its data through the backend forwarder before rendering.
Independent calls for one page are issued concurrently and joined with
`fetch_all`, which fails the whole page deterministically on the first error.
"""

from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from starlette.responses import Response

from portal.api.deps import (
    get_session,
    get_ticketing,
    parse_as,
    parse_page,
    require_profile,
    require_roles,
)
from portal.core.errors import ErrorKind, ForwardError
from portal.core.forwarder import fetch_all
from portal.core.result import Err, ForwardResult
from portal.core.session import CookieSession
from portal.core.session_controller import logout as end_session
from portal.schemas import (
    AssignableAgent,
    Comment,
    CreateSupportAgentRequest,
    CreateTicketRequest,
    DashboardStats,
    Ticket,
    TicketCategory,
    TicketPriority,
    TicketQuery,
    TicketStatus,
    UserProfile,
    UserRole,
    UserSummary,
)
from portal.services.auth import sign_in
from portal.services.ticketing import TicketingService
from portal.settings import settings
from portal.utils.logging_config import logger
from portal.web.templating import render

router = APIRouter(include_in_schema=False)

STAFF_ROLES = (UserRole.ADMIN, UserRole.SUPPORT_AGENT)

FORM_CHOICES = {
    "categories": [c.value for c in TicketCategory],
    "priorities": [p.value for p in TicketPriority],
    "statuses": [s.value for s in TicketStatus],
}


def _see_other(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _missing(**fields: str) -> Optional[str]:
    """Field-presence check for HTML forms."""
    empty = [name for name, value in fields.items() if not (value or "").strip()]
    if empty:
        return f"Please fill in: {', '.join(empty)}"
    return None


def _safe_next(target: Optional[str], default: str) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return default


def _with_error(target: str, message: str) -> str:
    separator = "&" if "?" in target else "?"
    return f"{target}{separator}{urlencode({'error': message})}"


def _current_url(request: Request) -> str:
    """Path and query of this page, minus a previous action's error."""
    query = urlencode([(k, v) for k, v in request.query_params.multi_items() if k != "error"])
    return f"{request.url.path}?{query}" if query else request.url.path


def _after_action(result: ForwardResult, target: str) -> RedirectResponse:
    """
    Redirects back after a form action. Application errors are carried to the
    target page as a message; every other error goes to the exception handler.
    """
    if isinstance(result, Err):
        if result.kind != ErrorKind.APPLICATION:
            result.unwrap()
        return _see_other(_with_error(target, result.message))
    return _see_other(target)


def _as_list(data: Any, *keys: str) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
    return []


def _ticket_query(request: Request) -> TicketQuery:
    """Listing parameters from the URL; blank or invalid values fall back to defaults."""
    raw = {k: v for k, v in request.query_params.items() if v.strip()}
    try:
        return TicketQuery.model_validate(raw)
    except ValidationError:
        logger.info(f"Ignoring invalid ticket listing parameters: {raw}")
        return TicketQuery()


# Entry and authentication pages


@router.get("/")
async def index(session: CookieSession = Depends(get_session)) -> RedirectResponse:
    if session.get_credential() and session.profile:
        return _see_other("/dashboard")
    return _see_other(settings.LOGIN_PATH)


@router.get("/login")
async def login_page(
    request: Request, session: CookieSession = Depends(get_session)
) -> Response:
    if session.is_authenticated and session.profile:
        return _see_other("/dashboard")
    return render(request, "login.html", {"notice": request.query_params.get("notice")})


@router.post("/login")
async def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    session: CookieSession = Depends(get_session),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    error = _missing(email=email, password=password)
    if error:
        return render(
            request, "login.html", {"error": error, "email": email},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    try:
        await sign_in(service, session, email.strip(), password)
    except ForwardError as e:
        return render(
            request, "login.html", {"error": e.message, "email": email},
            status_code=e.status_code or status.HTTP_502_BAD_GATEWAY,
        )
    return _see_other("/dashboard")


@router.post("/logout")
async def logout(session: CookieSession = Depends(get_session)) -> RedirectResponse:
    end_session(session)
    return _see_other(settings.LOGIN_PATH)


@router.get("/register")
async def register_page(request: Request) -> Response:
    return render(request, "register.html")


@router.post("/register")
async def register_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    error = _missing(email=email, password=password)
    if error is None:
        result = await service.register(email.strip(), password)
        if not isinstance(result, Err):
            return _see_other(f"/verify-email?{urlencode({'email': email.strip()})}")
        error = result.message
    return render(
        request, "register.html", {"error": error, "email": email},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@router.get("/verify-email")
async def verify_email_page(request: Request) -> Response:
    return render(
        request,
        "verify_email.html",
        {
            "email": request.query_params.get("email", ""),
            "notice": request.query_params.get("notice"),
        },
    )


@router.post("/verify-email")
async def verify_email_submit(
    request: Request,
    email: str = Form(""),
    otp: str = Form(""),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    error = _missing(email=email, otp=otp)
    if error is None:
        result = await service.verify_email(email.strip(), otp.strip())
        if not isinstance(result, Err):
            notice = "Email verified, you can now sign in."
            return _see_other(f"{settings.LOGIN_PATH}?{urlencode({'notice': notice})}")
        error = result.message
    return render(
        request, "verify_email.html", {"error": error, "email": email},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@router.post("/verify-email/resend")
async def resend_otp(
    request: Request,
    email: str = Form(""),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    error = _missing(email=email)
    if error is None:
        result = await service.resend_otp(email.strip())
        if not isinstance(result, Err):
            query = urlencode({"email": email.strip(), "notice": "A new code was sent."})
            return _see_other(f"/verify-email?{query}")
        error = result.message
    return render(
        request, "verify_email.html", {"error": error, "email": email},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


# Dashboard and tickets


@router.get("/dashboard")
async def dashboard(
    request: Request,
    user: UserProfile = Depends(require_profile),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    """
    Recent tickets and counters. A failed listing is shown inline instead of
    replacing the page; an expired session still ends it.
    """
    query = TicketQuery(page=0, size=10)
    result = await service.list_tickets(query.to_params())
    tickets: list[Ticket] = []
    error = None
    if isinstance(result, Err):
        if result.kind != ErrorKind.APPLICATION:
            result.unwrap()
        error = result.message
    else:
        tickets = parse_page(Ticket, result.data, query.page, query.size).items

    recent = sorted(
        tickets,
        key=lambda t: t.created.timestamp() if t.created else 0,
        reverse=True,
    )[:5]
    return render(
        request,
        "dashboard.html",
        {"stats": DashboardStats.from_tickets(tickets), "recent": recent, "error": error},
    )


@router.get("/tickets")
async def tickets_page(
    request: Request,
    user: UserProfile = Depends(require_profile),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    query = _ticket_query(request)
    data = (await service.list_tickets(query.to_params())).unwrap()
    page = parse_page(Ticket, data, query.page, query.size)
    title = "My Tickets" if user.role == UserRole.USER else "All Tickets"
    return render(
        request,
        "tickets.html",
        {"title": title, "page": page, "query": query, **FORM_CHOICES},
    )


@router.get("/tickets/new")
async def new_ticket_page(
    request: Request, user: UserProfile = Depends(require_profile)
) -> Response:
    return render(request, "ticket_new.html", {"form": {}, **FORM_CHOICES})


@router.post("/tickets/new")
async def new_ticket_submit(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    category: str = Form(""),
    priority: str = Form(""),
    user: UserProfile = Depends(require_profile),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    form = {"title": title, "description": description, "category": category, "priority": priority}
    error = _missing(**form)
    if error is None:
        try:
            ticket = CreateTicketRequest.model_validate(form)
        except ValidationError:
            error = "Please choose a valid category and priority"
        else:
            result = await service.create_ticket(ticket.model_dump(mode="json"))
            if not isinstance(result, Err):
                created = result.data if isinstance(result.data, dict) else {}
                if created.get("id") is not None:
                    return _see_other(f"/tickets/{created['id']}")
                return _see_other("/tickets")
            if result.kind != ErrorKind.APPLICATION:
                result.unwrap()
            error = result.message
    return render(
        request, "ticket_new.html", {"form": form, "error": error, **FORM_CHOICES},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@router.get("/tickets/{ticket_id}")
async def ticket_detail(
    request: Request,
    ticket_id: int,
    user: UserProfile = Depends(require_profile),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    """
    Ticket, comments and (for staff) assignable agents, fetched concurrently.
    """
    calls = [service.get_ticket(ticket_id), service.list_comments(ticket_id)]
    if user.is_staff:
        calls.append(service.assignable_agents())
    joined = await fetch_all(*calls)
    if isinstance(joined, Err):
        joined.unwrap()

    ticket = parse_as(Ticket, joined[0].data)
    comments = [parse_as(Comment, c) for c in _as_list(joined[1].data, "comments", "items")]
    comments.sort(key=lambda c: c.createdAt.timestamp() if c.createdAt else 0)
    agents = (
        [parse_as(AssignableAgent, a) for a in _as_list(joined[2].data)]
        if user.is_staff
        else []
    )
    return render(
        request,
        "ticket_detail.html",
        {
            "ticket": ticket,
            "comments": comments,
            "agents": agents,
            "error": request.query_params.get("error"),
            **FORM_CHOICES,
        },
    )


@router.post("/tickets/{ticket_id}/comments")
async def add_comment(
    ticket_id: int,
    content: str = Form(""),
    user: UserProfile = Depends(require_profile),
    service: TicketingService = Depends(get_ticketing),
) -> RedirectResponse:
    target = f"/tickets/{ticket_id}"
    if _missing(content=content):
        return _see_other(_with_error(target, "Comment cannot be empty"))
    return _after_action(await service.add_comment(ticket_id, content.strip()), target)


@router.post("/tickets/{ticket_id}/status")
async def change_status(
    ticket_id: int,
    new_status: str = Form("", alias="status"),
    user: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    service: TicketingService = Depends(get_ticketing),
) -> RedirectResponse:
    target = f"/tickets/{ticket_id}"
    if new_status not in FORM_CHOICES["statuses"]:
        return _see_other(_with_error(target, "Please choose a status"))
    return _after_action(await service.update_ticket_status(ticket_id, new_status), target)


@router.post("/tickets/{ticket_id}/assign")
async def assign_ticket(
    ticket_id: int,
    assigned_to_id: str = Form("", alias="assignedToId"),
    next_url: str = Form("", alias="next"),
    user: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    service: TicketingService = Depends(get_ticketing),
) -> RedirectResponse:
    target = _safe_next(next_url, f"/tickets/{ticket_id}")
    if not assigned_to_id.strip().isdigit():
        return _see_other(_with_error(target, "Please choose an agent"))
    result = await service.assign_ticket(ticket_id, int(assigned_to_id))
    return _after_action(result, target)


@router.post("/tickets/{ticket_id}/delete")
async def delete_ticket(
    ticket_id: int,
    user: UserProfile = Depends(require_profile),
    service: TicketingService = Depends(get_ticketing),
) -> RedirectResponse:
    result = await service.delete_ticket(ticket_id)
    if isinstance(result, Err) and result.kind == ErrorKind.APPLICATION:
        return _after_action(result, f"/tickets/{ticket_id}")
    return _after_action(result, "/tickets")


# Support staff and administration


@router.get("/support/tickets")
async def support_tickets(
    request: Request,
    user: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    """Tickets and assignable agents, fetched concurrently, fail-fast."""
    query = _ticket_query(request)
    joined = await fetch_all(
        service.list_tickets(query.to_params()),
        service.assignable_agents(),
    )
    if isinstance(joined, Err):
        joined.unwrap()
    tickets_result, agents_result = joined
    return render(
        request,
        "support_tickets.html",
        {
            "page": parse_page(Ticket, tickets_result.data, query.page, query.size),
            "agents": [parse_as(AssignableAgent, a) for a in _as_list(agents_result.data)],
            "query": query,
            "next_url": _current_url(request),
            "error": request.query_params.get("error"),
        },
    )


@router.get("/support/users")
async def users_page(
    request: Request,
    user: UserProfile = Depends(require_roles(UserRole.ADMIN)),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    query = _ticket_query(request)
    params = {"page": str(query.page), "size": str(query.size)}
    data = (await service.list_users(params)).unwrap()
    return render(
        request,
        "users.html",
        {
            "page": parse_page(UserSummary, data, query.page, query.size),
            "error": request.query_params.get("error"),
        },
    )


@router.get("/support/users/new")
async def new_user_page(
    request: Request, user: UserProfile = Depends(require_roles(UserRole.ADMIN))
) -> Response:
    return render(request, "user_new.html", {"form": {}})


@router.post("/support/users/new")
async def new_user_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    role: str = Form("SUPPORT_AGENT"),
    user: UserProfile = Depends(require_roles(UserRole.ADMIN)),
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    form = {"email": email.strip(), "password": password, "role": role}
    error = _missing(email=email, password=password)
    if error is None:
        try:
            agent = CreateSupportAgentRequest.model_validate(form)
        except ValidationError:
            error = "Please choose a valid role"
        else:
            result = await service.create_support_agent(agent.model_dump())
            if not isinstance(result, Err):
                return _see_other("/support/users")
            if result.kind != ErrorKind.APPLICATION:
                result.unwrap()
            error = result.message
    return render(
        request, "user_new.html", {"form": form, "error": error},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@router.post("/support/users/{user_id}/delete")
async def delete_user(
    user_id: int,
    user: UserProfile = Depends(require_roles(UserRole.ADMIN)),
    service: TicketingService = Depends(get_ticketing),
) -> RedirectResponse:
    return _after_action(await service.delete_user(user_id), "/support/users")
