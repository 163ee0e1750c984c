"""Pydantic schemas for users and the cached profile snapshot."""

import enum
from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, enum.Enum):
    USER = "USER"
    SUPPORT_AGENT = "SUPPORT_AGENT"
    ADMIN = "ADMIN"


class UserProfile(BaseModel):
    """
    Denormalized {id, email, role} kept next to the credential for display.
    Not authoritative: it may drift from the backend until the next login.
    """

    id: str
    email: str
    role: UserRole

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUPPORT_AGENT)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserSummary(BaseModel):
    id: Union[int, str]
    email: str
    role: Optional[UserRole] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    model_config = ConfigDict(extra="allow")


class AssignableAgent(BaseModel):
    id: Union[int, str]
    email: str

    model_config = ConfigDict(extra="allow")


class CreateSupportAgentRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    role: Literal["SUPPORT_AGENT", "ADMIN"] = "SUPPORT_AGENT"
