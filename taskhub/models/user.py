"""
User model for authentication and authorization.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from taskhub.models.base_model import TimestampedModel
from taskhub.models.enums import UserRole


class User(TimestampedModel):
    """
    User table - represents registered users.

    Emails are stored lower-cased and are unique across the system.
    Users are never hard-deleted.
    """

    __tablename__ = "user"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.MEMBER.value,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
