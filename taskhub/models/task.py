"""
Task model.

Represents a task or to-do item, plus its append-only comment thread.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.models.base_model import TimestampedModel
from taskhub.models.enums import TaskPriority, TaskStatus
from taskhub.utils.time import utc_now


class TaskComment(TimestampedModel):
    """
    TaskComment table - comments are appended, never edited or removed.
    """

    __tablename__ = "task_comment"

    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("task.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    author: Mapped[uuid.UUID] = mapped_column(
        "author_id",
        Uuid,
        ForeignKey("user.id"),
        nullable=False,
    )

    text: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )


class Task(TimestampedModel):
    """
    Task table - represents tasks or to-do items.

    completed_at is set exactly while status is "done".
    """

    __tablename__ = "task"

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaskStatus.TODO.value,
        index=True,
    )

    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaskPriority.MEDIUM.value,
        index=True,
    )

    due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Immutable after creation
    created_by: Mapped[uuid.UUID] = mapped_column(
        "created_by_id",
        Uuid,
        ForeignKey("user.id"),
        nullable=False,
        index=True,
    )

    assigned_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        "assigned_to_id",
        Uuid,
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    project: Mapped[Optional[uuid.UUID]] = mapped_column(
        "project_id",
        Uuid,
        ForeignKey("project.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    tags: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    estimated_hours: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
    )

    actual_hours: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    comments: Mapped[List[TaskComment]] = relationship(
        TaskComment,
        order_by=[TaskComment.created_at, TaskComment.id],
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE.value

    def set_status(self, new_status: str) -> bool:
        """
        Apply a status change and keep completed_at in step with it.

        Any status may follow any other. Returns True when the task
        moved into "done" with this call.
        """
        was_done = self.is_done
        self.status = new_status
        if self.is_done and not was_done:
            self.completed_at = utc_now()
            return True
        if not self.is_done:
            self.completed_at = None
        return False
