"""Exports all schemas for easy access."""

from .auth import AuthResponse, LoginRequest, LoginResponse, RegisterRequest, VerifyEmailRequest
from .pagination import Page
from .ticket import (
    AssignTicketRequest,
    AuditLog,
    Comment,
    CommentRequest,
    CreateTicketRequest,
    DashboardStats,
    Ticket,
    TicketCategory,
    TicketPriority,
    TicketQuery,
    TicketStatus,
    UpdateTicketInfoRequest,
    UpdateTicketStatusRequest,
)
from .user import AssignableAgent, CreateSupportAgentRequest, UserProfile, UserRole, UserSummary

__all__ = [
    "AssignTicketRequest",
    "AssignableAgent",
    "AuditLog",
    "AuthResponse",
    "Comment",
    "CommentRequest",
    "CreateSupportAgentRequest",
    "CreateTicketRequest",
    "DashboardStats",
    "LoginRequest",
    "LoginResponse",
    "Page",
    "RegisterRequest",
    "Ticket",
    "TicketCategory",
    "TicketPriority",
    "TicketQuery",
    "TicketStatus",
    "UpdateTicketInfoRequest",
    "UpdateTicketStatusRequest",
    "UserProfile",
    "UserRole",
    "UserSummary",
    "VerifyEmailRequest",
]
