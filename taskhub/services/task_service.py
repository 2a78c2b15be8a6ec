"""
Task business logic service.

Every mutation follows the same path: authorize, validate, write,
commit, then run the post-commit hook (live notification + audit entry).
Hook failures are logged and never surface to the caller.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.config import Settings, settings as default_settings
from taskhub.core.permissions import TaskOperation, can_access_project, can_perform
from taskhub.errors import ForbiddenError, NotFoundError, ValidationAppError
from taskhub.models.enums import ActivityAction, EntityType
from taskhub.models.project import Project
from taskhub.models.task import Task, TaskComment
from taskhub.repositories.project_repository import ProjectRepository
from taskhub.repositories.task_repository import TaskRepository
from taskhub.repositories.user_repository import UserRepository
from taskhub.schemas.task import (
    CommentRead,
    SortField,
    SortOrder,
    TaskCreate,
    TaskFilters,
    TaskRead,
    TaskUpdate,
)
from taskhub.services.activity_logger import ActivityLogger
from taskhub.services.notifier import ChangeNotifier, TaskEvent, project_scope, user_scope
from taskhub.utils.time import ensure_utc, utc_now

logger = logging.getLogger(__name__)

# Optional in the update schema, but the columns cannot be null
NON_NULLABLE_FIELDS = ("title", "status", "priority", "tags")


def task_scopes(task: Task) -> List[str]:
    """Notification scopes interested in a task."""
    scopes = []
    if task.project is not None:
        scopes.append(project_scope(task.project))
    for user_id in (task.created_by, task.assigned_to):
        if user_id is not None:
            scopes.append(user_scope(user_id))
    return list(dict.fromkeys(scopes))


def serialize_task(task: Task) -> Dict[str, Any]:
    return TaskRead.model_validate(task).model_dump(mode="json", by_alias=True)


def task_reference(task_id: UUID, project_id: Optional[UUID]) -> Dict[str, Any]:
    """Identifiers only, for audiences that may not see the task body."""
    return {"id": str(task_id), "project": str(project_id) if project_id else None}


class TaskService:
    """Service for task business logic."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[ChangeNotifier] = None,
        activity_logger: Optional[ActivityLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.repository = TaskRepository(db)
        self.projects = ProjectRepository(db)
        self.users = UserRepository(db)
        self.notifier = notifier
        self.activity_logger = activity_logger
        self.settings = settings or default_settings

    # -- helpers -----------------------------------------------------------

    async def _load_project(self, project_id: Optional[UUID]) -> Optional[Project]:
        if project_id is None:
            return None
        return await self.projects.get_by_id(project_id)

    async def _get_authorized(self, principal, task_id: UUID, operation: TaskOperation) -> Tuple[Task, Optional[Project]]:
        """
        Load a task for an operation.

        Tasks the principal cannot read are reported as missing so their
        existence is not revealed; readable tasks with a denied operation
        raise Forbidden.
        """
        task = await self.repository.get_by_id(task_id)
        project = await self._load_project(task.project) if task else None
        if task is None or not can_perform(principal, TaskOperation.READ, task, project):
            raise NotFoundError("Task not found")
        if operation != TaskOperation.READ and not can_perform(principal, operation, task, project):
            raise ForbiddenError(f"Not allowed to {operation.value} this task")
        return task, project

    async def _require_user(self, user_id: UUID, field: str = "assignedTo") -> None:
        if await self.users.get_by_id(user_id) is None:
            raise ValidationAppError(
                "Validation failed", [{"field": field, "message": "Assigned user not found"}]
            )

    async def _require_project_access(self, principal, project_id: UUID) -> Project:
        project = await self._load_project(project_id)
        if project is None or not can_access_project(principal, project):
            raise ValidationAppError(
                "Validation failed", [{"field": "project", "message": "Project not found"}]
            )
        return project

    async def _former_audience(
        self,
        task: Task,
        project: Optional[Project],
        former_assignee: Optional[UUID],
        former_project: Optional[UUID],
    ) -> Tuple[List[str], List[str]]:
        """
        Split a task's former audience after an edit.

        Returns (still_visible, revoked) scopes. A former assignee who can
        still read the task keeps getting full updates; a former project
        scope, or an assignee who lost read access, only hears that the
        task went away.
        """
        still_visible: List[str] = []
        revoked: List[str] = []
        if former_project is not None and former_project != task.project:
            revoked.append(project_scope(former_project))
        if former_assignee is not None and former_assignee not in (task.assigned_to, task.created_by):
            former = await self.users.get_by_id(former_assignee)
            if former is not None and can_perform(former, TaskOperation.READ, task, project):
                still_visible.append(user_scope(former_assignee))
            else:
                revoked.append(user_scope(former_assignee))
        return still_visible, revoked

    async def _after_commit(
        self,
        principal,
        event: TaskEvent,
        scopes: List[str],
        payload: Dict[str, Any],
        action: ActivityAction,
        entity_id: UUID,
        entity_name: str,
        changes: Optional[Any] = None,
        revoked_scopes: Optional[List[str]] = None,
        reference: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Post-commit hook: publish the change and record the audit entry."""
        if self.notifier is not None:
            try:
                self.notifier.publish_many(scopes, event, payload)
                if revoked_scopes:
                    self.notifier.publish_many(
                        revoked_scopes, TaskEvent.TASK_REMOVED, reference, exclude=scopes
                    )
            except Exception:
                logger.exception("Failed to publish %s for task %s", event.value, entity_id)
        if self.activity_logger is not None:
            await self.activity_logger.record(
                principal.id, action, EntityType.TASK, entity_id, entity_name, changes
            )

    # -- queries -----------------------------------------------------------

    async def list_tasks(
        self,
        principal,
        filters: Optional[TaskFilters] = None,
        sort_by: SortField = SortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Tuple[List[Task], Dict[str, Any]]:
        """List visible tasks with filters, sorting and 1-indexed pagination."""
        limit = self.settings.DEFAULT_PAGE_SIZE if limit is None else limit
        if page < 1:
            raise ValidationAppError("Page must be a positive integer")
        if limit < 1 or limit > self.settings.MAX_PAGE_SIZE:
            raise ValidationAppError(f"Limit must be between 1 and {self.settings.MAX_PAGE_SIZE}")

        tasks, total = await self.repository.list(
            principal,
            filters=filters,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=(page - 1) * limit,
        )
        pages = math.ceil(total / limit) if total else 0
        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": pages,
            "has_next": page < pages,
            "has_prev": page > 1,
        }
        return tasks, pagination

    async def get_task(self, principal, task_id: UUID) -> Task:
        task, _ = await self._get_authorized(principal, task_id, TaskOperation.READ)
        return task

    async def summarize(self, principal) -> Dict[str, Any]:
        """Counts over the visible task set; total is the sum of the status counts."""
        by_status = await self.repository.count_by_status(principal)
        by_priority = await self.repository.count_by_priority(principal)
        overdue = await self.repository.count_overdue(principal, utc_now())
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_priority": by_priority,
            "overdue": overdue,
        }

    # -- mutations ---------------------------------------------------------

    async def create_task(self, principal, data: TaskCreate) -> Task:
        fields = data.model_dump()
        fields["status"] = data.status.value
        fields["priority"] = data.priority.value
        fields["due_date"] = ensure_utc(data.due_date)

        if data.project is not None:
            await self._require_project_access(principal, data.project)
        if data.assigned_to is not None:
            await self._require_user(data.assigned_to)

        task = await self.repository.create(principal.id, fields)
        await self.db.commit()
        task = await self.repository.get_by_id(task.id)
        logger.info("User %s created task %s", principal.id, task.id)

        await self._after_commit(
            principal,
            TaskEvent.TASK_CREATED,
            task_scopes(task),
            serialize_task(task),
            ActivityAction.CREATED,
            task.id,
            task.title,
            data.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return task

    async def update_task(self, principal, task_id: UUID, data: TaskUpdate) -> Task:
        task, project = await self._get_authorized(principal, task_id, TaskOperation.UPDATE)
        changes = data.changes()

        for field in NON_NULLABLE_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationAppError(
                    "Validation failed", [{"field": field, "message": "Cannot be null"}]
                )

        if "assigned_to" in changes and changes["assigned_to"] != task.assigned_to:
            if not can_perform(principal, TaskOperation.ASSIGN, task, project):
                raise ForbiddenError("Only the task creator can change its assignee")
            if changes["assigned_to"] is not None:
                await self._require_user(changes["assigned_to"])

        if "project" in changes and changes["project"] is not None and changes["project"] != task.project:
            await self._require_project_access(principal, changes["project"])

        if "due_date" in changes:
            changes["due_date"] = ensure_utc(changes["due_date"])

        previous_assignee = task.assigned_to
        previous_project = task.project

        became_done = await self.repository.update(task, changes)
        await self.db.commit()
        task = await self.repository.get_by_id(task.id)
        logger.info("User %s updated task %s (%s)", principal.id, task.id, ", ".join(changes) or "no fields")

        project = await self._load_project(task.project)
        still_visible, revoked = await self._former_audience(task, project, previous_assignee, previous_project)
        await self._after_commit(
            principal,
            TaskEvent.TASK_UPDATED,
            task_scopes(task) + still_visible,
            serialize_task(task),
            ActivityAction.COMPLETED if became_done else ActivityAction.UPDATED,
            task.id,
            task.title,
            data.model_dump(mode="json", by_alias=True, exclude_unset=True),
            revoked_scopes=revoked,
            reference=task_reference(task.id, previous_project),
        )
        return task

    async def delete_task(self, principal, task_id: UUID) -> None:
        task, _ = await self._get_authorized(principal, task_id, TaskOperation.DELETE)
        scopes = task_scopes(task)
        payload = task_reference(task.id, task.project)
        title = task.title

        await self.repository.delete(task)
        await self.db.commit()
        logger.info("User %s deleted task %s", principal.id, task_id)

        await self._after_commit(
            principal,
            TaskEvent.TASK_DELETED,
            scopes,
            payload,
            ActivityAction.DELETED,
            task_id,
            title,
        )

    async def add_comment(self, principal, task_id: UUID, text: str) -> TaskComment:
        task, _ = await self._get_authorized(principal, task_id, TaskOperation.COMMENT)

        comment = await self.repository.add_comment(task, principal.id, text)
        await self.db.commit()
        await self.db.refresh(comment)

        comment_data = CommentRead.model_validate(comment).model_dump(mode="json", by_alias=True)
        await self._after_commit(
            principal,
            TaskEvent.COMMENT_ADDED,
            task_scopes(task),
            {"taskId": str(task.id), "project": str(task.project) if task.project else None, "comment": comment_data},
            ActivityAction.COMMENTED,
            task.id,
            task.title,
            {"text": text},
        )
        return comment

    async def assign_task(self, principal, task_id: UUID, assignee_id: Optional[UUID]) -> Task:
        """Set or clear (``None``) the assignee."""
        task, project = await self._get_authorized(principal, task_id, TaskOperation.ASSIGN)
        if assignee_id is not None:
            await self._require_user(assignee_id)

        previous_assignee = task.assigned_to
        await self.repository.update(task, {"assigned_to": assignee_id})
        await self.db.commit()
        task = await self.repository.get_by_id(task.id)
        logger.info("User %s assigned task %s to %s", principal.id, task.id, assignee_id)

        still_visible, revoked = await self._former_audience(task, project, previous_assignee, task.project)
        await self._after_commit(
            principal,
            TaskEvent.TASK_ASSIGNED,
            task_scopes(task) + still_visible,
            serialize_task(task),
            ActivityAction.ASSIGNED,
            task.id,
            task.title,
            {"assignedTo": str(assignee_id) if assignee_id else None},
            revoked_scopes=revoked,
            reference=task_reference(task.id, task.project),
        )
        return task
