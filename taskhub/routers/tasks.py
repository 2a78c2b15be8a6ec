"""
Task router - API endpoints for tasks.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError

from taskhub.core.dependencies import get_current_user, get_task_service
from taskhub.errors import ValidationAppError
from taskhub.models.user import User
from taskhub.schemas.base import MessageResponse
from taskhub.schemas.task import (
    CommentCreate,
    CommentEnvelope,
    CommentRead,
    Pagination,
    SortField,
    SortOrder,
    TaskAssign,
    TaskCreate,
    TaskEnvelope,
    TaskFilters,
    TaskPage,
    TaskRead,
    TaskStats,
    TaskStatsResponse,
    TaskUpdate,
)
from taskhub.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _parse_filters(**raw) -> TaskFilters:
    try:
        return TaskFilters.model_validate({key: value for key, value in raw.items() if value not in (None, "")})
    except ValidationError as exc:
        details = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationAppError("Validation failed", details)


@router.get("", response_model=TaskPage)
async def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    project: Optional[UUID] = None,
    assigned_to: Optional[UUID] = Query(None, alias="assignedTo"),
    search: Optional[str] = None,
    sort_by: SortField = Query(SortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    page: int = 1,
    limit: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """
    List tasks visible to the caller with pagination and filters.

    Filters: status, priority, project, assignedTo, search (title/description).
    """
    filters = _parse_filters(
        status=status_filter,
        priority=priority,
        project=project,
        assigned_to=assigned_to,
        search=search,
    )
    tasks, pagination = await service.list_tasks(
        current_user,
        filters=filters,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return TaskPage(
        tasks=[TaskRead.model_validate(task) for task in tasks],
        pagination=Pagination(**pagination),
    )


@router.get("/stats/summary", response_model=TaskStatsResponse)
async def task_stats(
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Counts by status and priority, plus overdue, over the caller's visible tasks."""
    stats = await service.summarize(current_user)
    return TaskStatsResponse(stats=TaskStats(**stats))


@router.get("/{task_id}", response_model=TaskEnvelope)
async def get_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Get a task by ID."""
    task = await service.get_task(current_user, task_id)
    return TaskEnvelope(data=TaskRead.model_validate(task))


@router.post("", response_model=TaskEnvelope, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Create a new task owned by the caller."""
    task = await service.create_task(current_user, data)
    return TaskEnvelope(data=TaskRead.model_validate(task))


@router.put("/{task_id}", response_model=TaskEnvelope)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Partially update a task; omitted fields are left alone."""
    task = await service.update_task(current_user, task_id, data)
    return TaskEnvelope(data=TaskRead.model_validate(task))


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(current_user, task_id)
    return MessageResponse(message="Task deleted successfully")


@router.post("/{task_id}/comments", response_model=CommentEnvelope, status_code=status.HTTP_201_CREATED)
async def add_comment(
    task_id: UUID,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    comment = await service.add_comment(current_user, task_id, data.text)
    return CommentEnvelope(comment=CommentRead.model_validate(comment))


@router.put("/{task_id}/assign", response_model=TaskEnvelope)
async def assign_task(
    task_id: UUID,
    data: TaskAssign,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Assign a task, or un-assign it with ``assignedTo: null``."""
    task = await service.assign_task(current_user, task_id, data.assigned_to)
    return TaskEnvelope(data=TaskRead.model_validate(task))
