"""
User Pydantic schemas.
"""

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BeforeValidator, EmailStr, StringConstraints

from taskhub.schemas.base import ApiModel

UserName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


EmailInput = Annotated[EmailStr, BeforeValidator(_normalize_email)]


class RegisterRequest(ApiModel):
    """Schema for registering a new account."""

    name: UserName
    email: EmailInput
    password: str


class LoginRequest(ApiModel):
    """Schema for login request."""

    email: EmailInput
    password: Annotated[str, StringConstraints(min_length=1)]


class ProfileUpdate(ApiModel):
    """Schema for updating the caller's own profile."""

    name: Optional[UserName] = None
    email: Optional[EmailInput] = None


class ChangePasswordRequest(ApiModel):
    current_password: Annotated[str, StringConstraints(min_length=1)]
    new_password: str


class UserRead(ApiModel):
    """Schema for reading user data (API response)."""

    id: UUID
    name: str
    email: str
    role: str
    created_at: datetime


class UserResponse(ApiModel):
    user: UserRead


class AuthResponse(ApiModel):
    """Schema for login/register response."""

    message: str
    token: str
    user: UserRead
