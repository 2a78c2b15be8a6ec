"""
Project model.

A project groups tasks; its owner and members can see every task in it.
"""

import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, JSON, String, Table, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.db.base import Base
from taskhub.models.base_model import TimestampedModel
from taskhub.models.enums import ProjectPriority, ProjectStatus

if TYPE_CHECKING:
    from taskhub.models.user import User


project_member = Table(
    "project_member",
    Base.metadata,
    Column("project_id", Uuid, ForeignKey("project.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("user.id", ondelete="CASCADE"), primary_key=True),
)


class Project(TimestampedModel):
    """
    Project table - a named group of tasks with an owner and members.
    """

    __tablename__ = "project"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    owner: Mapped[uuid.UUID] = mapped_column(
        "owner_id",
        Uuid,
        ForeignKey("user.id"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectStatus.ACTIVE.value,
    )

    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectPriority.MEDIUM.value,
    )

    color: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="#3B82F6",
    )

    tags: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    members: Mapped[List["User"]] = relationship(
        "User",
        secondary=project_member,
        lazy="selectin",
    )

    @property
    def member_ids(self) -> set:
        return {member.id for member in self.members}

    def has_access(self, user_id: uuid.UUID) -> bool:
        """Owner or listed member."""
        return self.owner == user_id or user_id in self.member_ids
