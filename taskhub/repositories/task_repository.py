"""
Task repository - database operations for Task and TaskComment.

Visibility scoping lives here so list, count and statistics queries all
see exactly the tasks the principal may read.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.permissions import check_is_admin
from taskhub.models.enums import PRIORITY_RANK, TaskPriority, TaskStatus
from taskhub.models.task import Task, TaskComment
from taskhub.repositories.project_repository import accessible_project_ids
from taskhub.schemas.task import SortField, SortOrder, TaskFilters

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Make a user-supplied search term match literally inside LIKE."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


priority_rank = case(PRIORITY_RANK, value=func.lower(Task.priority), else_=0)


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _visibility_conditions(self, principal) -> list:
        if check_is_admin(principal):
            return []
        return [
            or_(
                Task.created_by == principal.id,
                Task.assigned_to == principal.id,
                Task.project.in_(accessible_project_ids(principal.id)),
            )
        ]

    def _filter_conditions(self, filters: Optional[TaskFilters]) -> list:
        if filters is None:
            return []
        conditions = []
        if filters.status is not None:
            conditions.append(Task.status == filters.status.value)
        if filters.priority is not None:
            conditions.append(func.lower(Task.priority) == filters.priority.value)
        if filters.project is not None:
            conditions.append(Task.project == filters.project)
        if filters.assigned_to is not None:
            conditions.append(Task.assigned_to == filters.assigned_to)
        if filters.search:
            pattern = f"%{escape_like(filters.search.strip())}%"
            conditions.append(
                or_(
                    Task.title.ilike(pattern, escape=LIKE_ESCAPE),
                    Task.description.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        return conditions

    @staticmethod
    def _ordering(sort_by: SortField, sort_order: SortOrder) -> list:
        descending = sort_order == SortOrder.DESC

        def directed(column):
            return column.desc() if descending else column.asc()

        tie_break = [Task.created_at.desc(), Task.id.asc()]

        if sort_by == SortField.PRIORITY:
            return [directed(priority_rank)] + tie_break
        if sort_by == SortField.DUE_DATE:
            # Tasks without a due date always come last
            return [Task.due_date.is_(None).asc(), directed(Task.due_date)] + tie_break
        if sort_by == SortField.TITLE:
            return [directed(func.lower(Task.title))] + tie_break
        return [directed(Task.created_at), Task.id.asc()]

    async def list(
        self,
        principal,
        filters: Optional[TaskFilters] = None,
        sort_by: SortField = SortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Task], int]:
        """List visible tasks with filters; returns (page items, total matches)."""
        conditions = self._visibility_conditions(principal) + self._filter_conditions(filters)

        count_result = await self.db.execute(
            select(func.count(Task.id)).where(*conditions)
        )
        total = count_result.scalar_one()

        query = (
            select(Task)
            .where(*conditions)
            .order_by(*self._ordering(sort_by, sort_order))
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_by_id(self, task_id: UUID) -> Optional[Task]:
        """Get a task by ID, always re-reading it and its comments."""
        result = await self.db.execute(
            select(Task)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, created_by: UUID, data: dict) -> Task:
        """Create a new task."""
        data = dict(data)
        status = data.pop("status", TaskStatus.TODO.value)
        data.setdefault("tags", [])
        task = Task(created_by=created_by, **data)
        task.set_status(status)
        self.db.add(task)
        await self.db.flush()
        return task

    async def update(self, task: Task, data: dict) -> bool:
        """
        Apply a partial update.

        Returns True when this update moved the task into "done".
        """
        update_data = dict(data)
        became_done = False
        if "status" in update_data:
            became_done = task.set_status(update_data.pop("status"))
        for field, value in update_data.items():
            setattr(task, field, value)
        await self.db.flush()
        return became_done

    async def delete(self, task: Task) -> None:
        await self.db.delete(task)
        await self.db.flush()

    async def add_comment(self, task: Task, author_id: UUID, text: str) -> TaskComment:
        comment = TaskComment(task_id=task.id, author=author_id, text=text)
        self.db.add(comment)
        await self.db.flush()
        return comment

    async def count_by_status(self, principal) -> Dict[str, int]:
        conditions = self._visibility_conditions(principal)
        result = await self.db.execute(
            select(Task.status, func.count(Task.id)).where(*conditions).group_by(Task.status)
        )
        counts = {status.value: 0 for status in TaskStatus}
        for status, count in result.all():
            counts[status] = counts.get(status, 0) + count
        return counts

    async def count_by_priority(self, principal) -> Dict[str, int]:
        conditions = self._visibility_conditions(principal)
        priority = func.lower(Task.priority)
        result = await self.db.execute(
            select(priority, func.count(Task.id)).where(*conditions).group_by(priority)
        )
        counts = {p.value: 0 for p in TaskPriority}
        for value, count in result.all():
            counts[value] = counts.get(value, 0) + count
        return counts

    async def count_overdue(self, principal, now: datetime) -> int:
        conditions = self._visibility_conditions(principal) + [
            Task.due_date.is_not(None),
            Task.due_date < now,
            Task.status != TaskStatus.DONE.value,
        ]
        result = await self.db.execute(select(func.count(Task.id)).where(*conditions))
        return result.scalar_one()
