"""Pydantic schemas for tickets, comments and audit entries."""

import enum
from datetime import datetime
from typing import Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from portal.schemas.user import UserSummary


class TicketStatus(str, enum.Enum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TicketPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TicketCategory(str, enum.Enum):
    NETWORK = "NETWORK"
    HARDWARE = "HARDWARE"
    SOFTWARE = "SOFTWARE"
    OTHER = "OTHER"


class Ticket(BaseModel):
    """A ticket as returned by the backend. Unknown fields are kept."""

    id: Union[int, str]
    title: str = ""
    description: str = ""
    category: Optional[TicketCategory] = None
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    createdBy: Optional[UserSummary] = None
    assignedTo: Optional[UserSummary] = None
    assignedBy: Optional[UserSummary] = None
    creationDate: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    assignedAt: Optional[datetime] = None
    resolvedAt: Optional[datetime] = None
    closedAt: Optional[datetime] = None

    model_config = ConfigDict(extra="allow")

    @property
    def created(self) -> Optional[datetime]:
        return self.creationDate or self.createdAt


class Comment(BaseModel):
    id: Union[int, str]
    content: str
    author: Optional[UserSummary] = None
    createdAt: Optional[datetime] = None

    model_config = ConfigDict(extra="allow")


class AuditLog(BaseModel):
    id: Union[int, str]
    action: str
    entityType: Optional[str] = None
    entityId: Optional[Union[int, str]] = None
    userId: Optional[Union[int, str]] = None
    timestamp: Optional[datetime] = None
    details: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class CreateTicketRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    category: TicketCategory
    priority: TicketPriority
    status: TicketStatus = TicketStatus.NEW


class UpdateTicketInfoRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    creationDate: Optional[datetime] = None
    category: Optional[TicketCategory] = None
    priority: Optional[TicketPriority] = None


class UpdateTicketStatusRequest(BaseModel):
    status: TicketStatus


class AssignTicketRequest(BaseModel):
    assignedToId: int


class CommentRequest(BaseModel):
    content: str = Field(..., min_length=1)


class TicketQuery(BaseModel):
    """Listing parameters; only the ones that are set are sent to the backend."""

    page: int = Field(default=0, ge=0)
    size: int = Field(default=10, ge=1, le=100)
    sortBy: str = "creationDate"
    sortDir: str = "desc"
    search: Optional[str] = None
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None

    def to_params(self) -> dict[str, str]:
        params = {
            "page": str(self.page),
            "size": str(self.size),
            "sortBy": self.sortBy,
            "sortDir": self.sortDir,
        }
        if self.search:
            params["search"] = self.search
        if self.status:
            params["status"] = self.status.value
        if self.priority:
            params["priority"] = self.priority.value
        return params


class DashboardStats(BaseModel):
    total: int = 0
    open: int = 0
    inProgress: int = 0
    closed: int = 0

    @classmethod
    def from_tickets(cls, tickets: Iterable[Ticket]) -> "DashboardStats":
        stats = cls()
        for ticket in tickets:
            stats.total += 1
            if ticket.status in (TicketStatus.NEW, TicketStatus.IN_PROGRESS):
                stats.open += 1
            if ticket.status == TicketStatus.IN_PROGRESS:
                stats.inProgress += 1
            if ticket.status in (TicketStatus.RESOLVED, TicketStatus.CLOSED):
                stats.closed += 1
        return stats
