"""
Authentication service for registration, login and token management.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.config import Settings, settings as default_settings
from taskhub.core.jwt import create_access_token, decode_access_token
from taskhub.core.security import verify_password
from taskhub.errors import (
    ConflictError,
    InvalidCredentialsError,
    PrincipalNotFoundError,
    ValidationAppError,
)
from taskhub.models.enums import ActivityAction, EntityType
from taskhub.models.user import User
from taskhub.repositories.user_repository import UserRepository
from taskhub.schemas.user import ChangePasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest
from taskhub.services.activity_logger import ActivityLogger

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Optional[Settings] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.activity_logger = activity_logger
        self.user_repository = UserRepository(db)

    def _check_password_policy(self, password: str) -> None:
        minimum = self.settings.PASSWORD_MIN_LENGTH
        if len(password or "") < minimum:
            raise ValidationAppError(
                "Validation failed",
                [{"field": "password", "message": f"Password must be at least {minimum} characters long"}],
            )

    def create_token_for_user(self, user: User) -> str:
        """Create a JWT access token for a user."""
        return create_access_token(user.id, settings=self.settings)

    async def register(self, data: RegisterRequest) -> Tuple[User, str]:
        """
        Create an account and log it in.

        Raises:
            ValidationAppError: password too short
            ConflictError: email already registered
        """
        self._check_password_policy(data.password)

        if await self.user_repository.get_by_email(data.email):
            raise ConflictError("User already exists with this email")

        try:
            user = await self.user_repository.create(
                name=data.name,
                email=data.email,
                password=data.password,
            )
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            raise ConflictError("User already exists with this email")

        logger.info("Registered user %s", user.id)
        if self.activity_logger is not None:
            await self.activity_logger.record(
                user.id, ActivityAction.CREATED, EntityType.USER, user.id, user.name,
                {"name": user.name, "email": user.email},
            )
        return user, self.create_token_for_user(user)

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user by email and password.

        Returns:
            User object if authentication successful, None otherwise
        """
        user = await self.user_repository.get_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    async def login(self, credentials: LoginRequest) -> Tuple[User, str]:
        user = await self.authenticate_user(credentials.email, credentials.password)
        if not user:
            raise InvalidCredentialsError("Invalid email or password")
        return user, self.create_token_for_user(user)

    async def resolve_principal(self, token: str) -> User:
        """Verify a bearer token and load the live user behind it."""
        user_id: UUID = decode_access_token(token, settings=self.settings)
        user = await self.user_repository.get_by_id(user_id)
        if not user:
            raise PrincipalNotFoundError("Token is valid but user no longer exists")
        return user

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value}
        if not changes:
            return user

        if "email" in changes and changes["email"] != user.email:
            existing = await self.user_repository.get_by_email(changes["email"])
            if existing and existing.id != user.id:
                raise ConflictError("Email already in use")

        try:
            user = await self.user_repository.update(user, changes)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email already in use")

        if self.activity_logger is not None:
            await self.activity_logger.record(
                user.id, ActivityAction.UPDATED, EntityType.USER, user.id, user.name, changes,
            )
        return user

    async def change_password(self, user: User, data: ChangePasswordRequest) -> None:
        if not verify_password(data.current_password, user.hashed_password):
            raise InvalidCredentialsError("Current password is incorrect")
        self._check_password_policy(data.new_password)

        await self.user_repository.update(user, {"password": data.new_password})
        await self.db.commit()
        logger.info("Password changed for user %s", user.id)
