"""
Authentication router for registration, login and the caller's own account.
"""

from fastapi import APIRouter, Depends, status

from taskhub.core.dependencies import get_auth_service, get_current_user
from taskhub.core.rate_limit import enforce_auth_rate_limit
from taskhub.models.user import User
from taskhub.schemas.base import MessageResponse
from taskhub.schemas.user import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserRead,
    UserResponse,
)
from taskhub.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def register(
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Create an account and return a JWT access token for it.

    New accounts always get the ``member`` role.
    """
    user, token = await auth_service.register(data)
    return AuthResponse(
        message="User registered successfully",
        token=token,
        user=UserRead.model_validate(user),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def login(
    credentials: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Authenticate user and return JWT access token."""
    user, token = await auth_service.login(credentials)
    return AuthResponse(
        message="Login successful",
        token=token,
        user=UserRead.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return UserResponse(user=UserRead.model_validate(current_user))


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Update name and/or email of the current user."""
    user = await auth_service.update_profile(current_user, data)
    return UserResponse(user=UserRead.model_validate(user))


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.change_password(current_user, data)
    return MessageResponse(message="Password changed successfully")
