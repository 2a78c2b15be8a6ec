"""
User repository - database operations for User.
"""

from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.security import hash_password
from taskhub.models.enums import UserRole
from taskhub.models.user import User


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (case-insensitive)."""
        if not email or not email.strip():
            return None
        email_clean = email.strip().lower()
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email_clean)
        )
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: Iterable[UUID]) -> list[User]:
        ids = list(set(user_ids))
        if not ids:
            return []
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return list(result.scalars().all())

    async def create(
        self,
        name: str,
        email: str,
        password: str,
        role: str = UserRole.MEMBER.value,
    ) -> User:
        """Create a new user."""
        user = User(
            email=email.strip().lower(),
            name=name,
            hashed_password=hash_password(password),
            role=role,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def update(self, user: User, data: dict) -> User:
        """Apply profile changes; a ``password`` key is hashed first."""
        update_data = dict(data)

        if "password" in update_data:
            update_data["hashed_password"] = hash_password(update_data.pop("password"))
        if "email" in update_data and update_data["email"]:
            update_data["email"] = update_data["email"].strip().lower()

        for field, value in update_data.items():
            setattr(user, field, value)

        await self.db.flush()
        await self.db.refresh(user)
        return user
