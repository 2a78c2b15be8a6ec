"""
Task Pydantic schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BeforeValidator, Field, StringConstraints, computed_field

from taskhub.models.enums import TaskPriority, TaskStatus
from taskhub.schemas.base import ApiModel, ApiRead

TaskTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
TaskDescription = Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]
CommentText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
Hours = Annotated[float, Field(ge=0)]


def _lower(value):
    # Older clients send "High"/"Medium"/"Low"
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _dedupe_tags(value):
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        seen = []
        for tag in value:
            tag = str(tag).strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen
    return value


PriorityInput = Annotated[TaskPriority, BeforeValidator(_lower)]
StatusInput = Annotated[TaskStatus, BeforeValidator(_lower)]
Tags = Annotated[List[str], BeforeValidator(_dedupe_tags)]

DUE_DATE_ALIASES = AliasChoices("dueDate", "due_date", "deadline")


class TaskCreate(ApiModel):
    """Schema for creating a new task."""

    title: TaskTitle
    description: Optional[TaskDescription] = None
    status: StatusInput = TaskStatus.TODO
    priority: PriorityInput = TaskPriority.MEDIUM
    due_date: Optional[datetime] = Field(default=None, validation_alias=DUE_DATE_ALIASES)
    assigned_to: Optional[UUID] = None
    project: Optional[UUID] = None
    tags: Tags = Field(default_factory=list)
    estimated_hours: Optional[Hours] = None
    actual_hours: Optional[Hours] = None


class TaskUpdate(ApiModel):
    """
    Schema for a partial task update.

    Only fields present in the request body are applied. Sending
    ``assignedTo: null`` or ``project: null`` clears the reference.
    """

    title: Optional[TaskTitle] = None
    description: Optional[TaskDescription] = None
    status: Optional[StatusInput] = None
    priority: Optional[PriorityInput] = None
    due_date: Optional[datetime] = Field(default=None, validation_alias=DUE_DATE_ALIASES)
    assigned_to: Optional[UUID] = None
    project: Optional[UUID] = None
    tags: Optional[Tags] = None
    estimated_hours: Optional[Hours] = None
    actual_hours: Optional[Hours] = None

    def changes(self) -> dict:
        """Explicitly provided fields, enums reduced to their stored values."""
        data = self.model_dump(exclude_unset=True)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.value
        return data


class TaskAssign(ApiModel):
    assigned_to: Optional[UUID] = None


class CommentCreate(ApiModel):
    text: CommentText


class CommentRead(ApiRead):
    task_id: UUID
    author: UUID
    text: str


class TaskRead(ApiRead):
    """Schema for reading task data (API response)."""

    title: str
    description: Optional[str] = None
    status: str
    priority: str
    due_date: Optional[datetime] = None
    created_by: UUID
    assigned_to: Optional[UUID] = None
    project: Optional[UUID] = None
    tags: List[str] = []
    comments: List[CommentRead] = []
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def completed(self) -> bool:
        return self.status == TaskStatus.DONE.value


class TaskEnvelope(ApiModel):
    data: TaskRead


class CommentEnvelope(ApiModel):
    comment: CommentRead


class SortField(str, Enum):
    CREATED_AT = "createdAt"
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TaskFilters(ApiModel):
    """Optional narrowing of the visible task set."""

    status: Optional[StatusInput] = None
    priority: Optional[PriorityInput] = None
    project: Optional[UUID] = None
    assigned_to: Optional[UUID] = None
    search: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]] = None


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class TaskPage(ApiModel):
    tasks: List[TaskRead]
    pagination: Pagination


class TaskStats(ApiModel):
    total: int
    by_status: dict
    by_priority: dict
    overdue: int


class TaskStatsResponse(ApiModel):
    stats: TaskStats
