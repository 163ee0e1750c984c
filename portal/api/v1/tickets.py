"""Ticket and comment endpoints, forwarded to the backend with the session's token."""

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from portal.api.deps import get_ticketing, parse_as, passthrough
from portal.schemas import (
    AssignTicketRequest,
    AuditLog,
    CommentRequest,
    CreateTicketRequest,
    UpdateTicketInfoRequest,
    UpdateTicketStatusRequest,
)
from portal.services.ticketing import TicketingService

router = APIRouter()

LISTING_PARAMS = ("page", "size", "sortBy", "sortDir", "search", "status", "priority")


@router.get("")
async def list_tickets(
    request: Request, service: TicketingService = Depends(get_ticketing)
) -> Response:
    """
    Lists tickets visible to the caller. Only the listing parameters the
    caller actually sent are forwarded.
    """
    params = {k: v for k, v in request.query_params.items() if k in LISTING_PARAMS and v}
    return passthrough(await service.list_tickets(params))


@router.post("")
async def create_ticket(
    ticket: CreateTicketRequest, service: TicketingService = Depends(get_ticketing)
) -> Response:
    return passthrough(await service.create_ticket(ticket.model_dump(mode="json")))


# Registered before "/{ticket_id}" so it is not captured as an id.
@router.get("/assignable-agents")
async def assignable_agents(service: TicketingService = Depends(get_ticketing)) -> Response:
    return passthrough(await service.assignable_agents())


@router.get("/{ticket_id}")
async def get_ticket(ticket_id: int, service: TicketingService = Depends(get_ticketing)) -> Response:
    return passthrough(await service.get_ticket(ticket_id))


@router.delete("/{ticket_id}")
async def delete_ticket(
    ticket_id: int, service: TicketingService = Depends(get_ticketing)
) -> Response:
    return passthrough(await service.delete_ticket(ticket_id))


@router.patch("/{ticket_id}/info")
async def update_ticket_info(
    ticket_id: int,
    update: UpdateTicketInfoRequest,
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    data = update.model_dump(mode="json", exclude_none=True)
    return passthrough(await service.update_ticket_info(ticket_id, data))


@router.patch("/{ticket_id}/status")
async def update_ticket_status(
    ticket_id: int,
    update: UpdateTicketStatusRequest,
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    return passthrough(await service.update_ticket_status(ticket_id, update.status.value))


@router.patch("/{ticket_id}/assign")
async def assign_ticket(
    ticket_id: int,
    assignment: AssignTicketRequest,
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    return passthrough(await service.assign_ticket(ticket_id, assignment.assignedToId))


@router.get("/{ticket_id}/audit-logs")
async def ticket_audit_logs(
    ticket_id: int, service: TicketingService = Depends(get_ticketing)
) -> Response:
    """History entries for a ticket; a malformed entry is a backend error."""
    result = await service.ticket_audit_logs(ticket_id)
    entries = result.unwrap()
    for entry in entries if isinstance(entries, list) else []:
        parse_as(AuditLog, entry)
    return passthrough(result)


@router.get("/{ticket_id}/comments")
async def list_comments(
    ticket_id: int, service: TicketingService = Depends(get_ticketing)
) -> Response:
    return passthrough(await service.list_comments(ticket_id))


@router.post("/{ticket_id}/comments")
async def add_comment(
    ticket_id: int,
    comment: CommentRequest,
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    return passthrough(await service.add_comment(ticket_id, comment.content))


@router.patch("/{ticket_id}/comments/{comment_id}")
async def update_comment(
    ticket_id: int,
    comment_id: int,
    comment: CommentRequest,
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    return passthrough(await service.update_comment(ticket_id, comment_id, comment.content))


@router.delete("/{ticket_id}/comments/{comment_id}")
async def delete_comment(
    ticket_id: int,
    comment_id: int,
    service: TicketingService = Depends(get_ticketing),
) -> Response:
    return passthrough(await service.delete_comment(ticket_id, comment_id))
