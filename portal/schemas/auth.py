"""Pydantic schemas for authentication requests and responses."""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from portal.schemas.user import UserProfile, UserRole


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class VerifyEmailRequest(BaseModel):
    email: str = Field(..., min_length=1)
    otp: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Body returned by the backend's /user/authenticate endpoint."""

    token: Optional[str] = None
    email: str
    userId: Union[int, str]
    authorities: List[str] = Field(default_factory=list)
    message: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    def to_profile(self) -> UserProfile:
        role = self.authorities[0] if self.authorities else UserRole.USER.value
        role = role.removeprefix("ROLE_")
        return UserProfile(id=str(self.userId), email=self.email, role=role)


class LoginResponse(BaseModel):
    userId: Union[int, str]
    email: str
    authorities: List[str]
