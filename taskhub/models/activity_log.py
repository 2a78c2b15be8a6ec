"""
ActivityLog model.

Audit trail of successful mutations. Rows are only ever inserted.
"""

import uuid
from typing import Any, Optional

from sqlalchemy import ForeignKey, Index, JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from taskhub.models.base_model import TimestampedModel


class ActivityLog(TimestampedModel):
    """
    ActivityLog table - who did what to which entity.

    entity_id is not a foreign key: the trail outlives deleted tasks/projects.
    """

    __tablename__ = "activity_log"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user.id"),
        nullable=False,
    )

    # created / updated / deleted / assigned / completed / commented
    action: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    # task / project / user
    entity_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )

    # Snapshot of the title/name at the time of the action
    entity_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    details: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    changes: Mapped[Optional[Any]] = mapped_column(
        JSON,
        nullable=True,
    )

    __table_args__ = (
        Index("ix_activity_log_user_created", "user_id", "created_at"),
    )
