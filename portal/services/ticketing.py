"""
Backend operations used by the portal's pages and JSON routes.

Each method forwards one call on behalf of the request's session and returns
the tagged result untouched; callers decide whether to unwrap it.
"""

from typing import Any, Optional

from portal.core.forwarder import BackendClient
from portal.core.result import ForwardResult
from portal.core.session import CookieSession


class TicketingService:
    def __init__(self, backend: BackendClient, session: CookieSession):
        self.backend = backend
        self.session = session

    async def _call(
        self,
        path: str,
        method: str = "GET",
        json: Any = None,
        params: Optional[dict[str, str]] = None,
    ) -> ForwardResult:
        return await self.backend.forward(
            path, method, session=self.session, json=json, params=params
        )

    # Authentication (no credential required)

    async def authenticate(self, email: str, password: str) -> ForwardResult:
        return await self.backend.forward(
            "/user/authenticate",
            "POST",
            json={"email": email, "password": password},
            authenticated=False,
        )

    async def register(self, email: str, password: str) -> ForwardResult:
        return await self.backend.forward(
            "/users/register",
            "POST",
            json={"email": email, "password": password},
            authenticated=False,
        )

    async def verify_email(self, email: str, otp: str) -> ForwardResult:
        return await self.backend.forward(
            "/users/verify-email",
            "POST",
            json={"email": email, "otp": otp},
            authenticated=False,
        )

    async def resend_otp(self, email: str) -> ForwardResult:
        return await self.backend.forward(
            "/users/resend-otp", "POST", params={"email": email}, authenticated=False
        )

    # Tickets

    async def list_tickets(self, params: Optional[dict[str, str]] = None) -> ForwardResult:
        return await self._call("/tickets", params=params or None)

    async def get_ticket(self, ticket_id: int) -> ForwardResult:
        return await self._call(f"/tickets/{ticket_id}")

    async def create_ticket(self, data: dict[str, Any]) -> ForwardResult:
        return await self._call("/tickets", "POST", json=data)

    async def update_ticket_info(self, ticket_id: int, data: dict[str, Any]) -> ForwardResult:
        return await self._call(f"/tickets/{ticket_id}/info", "PATCH", json=data)

    async def update_ticket_status(self, ticket_id: int, status: str) -> ForwardResult:
        return await self._call(
            f"/tickets/{ticket_id}/status", "PATCH", json={"status": status}
        )

    async def delete_ticket(self, ticket_id: int) -> ForwardResult:
        return await self._call(f"/tickets/{ticket_id}", "DELETE")

    async def assign_ticket(self, ticket_id: int, assigned_to_id: int) -> ForwardResult:
        return await self._call(
            f"/tickets/{ticket_id}/assign", "PATCH", json={"assignedToId": assigned_to_id}
        )

    async def assignable_agents(self) -> ForwardResult:
        return await self._call("/tickets/assignable-agents")

    async def ticket_audit_logs(self, ticket_id: int) -> ForwardResult:
        return await self._call(f"/tickets/{ticket_id}/audit-logs")

    # Comments

    async def list_comments(self, ticket_id: int) -> ForwardResult:
        return await self._call(f"/tickets/{ticket_id}/comments")

    async def add_comment(self, ticket_id: int, content: str) -> ForwardResult:
        return await self._call(
            f"/tickets/{ticket_id}/comments", "POST", json={"content": content}
        )

    async def update_comment(self, ticket_id: int, comment_id: int, content: str) -> ForwardResult:
        return await self._call(
            f"/tickets/{ticket_id}/comments/{comment_id}", "PATCH", json={"content": content}
        )

    async def delete_comment(self, ticket_id: int, comment_id: int) -> ForwardResult:
        return await self._call(f"/tickets/{ticket_id}/comments/{comment_id}", "DELETE")

    # Administration

    async def list_users(self, params: Optional[dict[str, str]] = None) -> ForwardResult:
        return await self._call("/admin/users", params=params)

    async def create_support_agent(self, data: dict[str, Any]) -> ForwardResult:
        return await self._call("/admin/create-support-agent", "POST", json=data)

    async def delete_user(self, user_id: int) -> ForwardResult:
        return await self._call(f"/admin/users/{user_id}", "DELETE")
