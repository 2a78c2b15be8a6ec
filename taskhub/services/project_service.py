"""
Project business logic service.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.permissions import can_access_project, can_manage_project, check_is_admin
from taskhub.errors import ForbiddenError, NotFoundError, ValidationAppError
from taskhub.models.enums import ActivityAction, EntityType
from taskhub.models.project import Project
from taskhub.repositories.project_repository import ProjectRepository
from taskhub.repositories.user_repository import UserRepository
from taskhub.schemas.project import ProjectCreate, ProjectUpdate
from taskhub.services.activity_logger import ActivityLogger
from taskhub.services.notifier import ChangeNotifier, project_scope
from taskhub.utils.time import ensure_utc

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for project business logic."""

    def __init__(
        self,
        db: AsyncSession,
        activity_logger: Optional[ActivityLogger] = None,
        notifier: Optional[ChangeNotifier] = None,
    ):
        self.db = db
        self.repository = ProjectRepository(db)
        self.users = UserRepository(db)
        self.activity_logger = activity_logger
        self.notifier = notifier

    async def _record(self, principal, action: ActivityAction, project_id: UUID, name: str, changes=None) -> None:
        if self.activity_logger is not None:
            await self.activity_logger.record(
                principal.id, action, EntityType.PROJECT, project_id, name, changes
            )

    async def _get_accessible(self, principal, project_id: UUID) -> Project:
        project = await self.repository.get_by_id(project_id)
        if project is None or not can_access_project(principal, project):
            raise NotFoundError("Project not found")
        return project

    async def _get_managed(self, principal, project_id: UUID) -> Project:
        project = await self._get_accessible(principal, project_id)
        if not can_manage_project(principal, project):
            raise ForbiddenError("Only the project owner can change this project")
        return project

    async def _revoke_live_access(self, project: Project, user_id: UUID) -> None:
        """Stop project updates reaching a user who can no longer see the project."""
        if self.notifier is None:
            return
        user = await self.users.get_by_id(user_id)
        if user is not None and can_access_project(user, project):
            return
        self.notifier.unsubscribe_user(project_scope(project.id), user_id)

    async def list_projects(self, principal) -> List[Project]:
        user_id = None if check_is_admin(principal) else principal.id
        return await self.repository.list_for_user(user_id)

    async def get_project(self, principal, project_id: UUID) -> Project:
        return await self._get_accessible(principal, project_id)

    async def create_project(self, principal, data: ProjectCreate) -> Project:
        members = await self.users.get_many(data.members)
        if len(members) != len(set(data.members)):
            raise ValidationAppError(
                "Validation failed", [{"field": "members", "message": "One or more members not found"}]
            )

        fields = data.model_dump(exclude={"members"})
        fields["status"] = data.status.value
        fields["priority"] = data.priority.value
        fields["start_date"] = ensure_utc(data.start_date)
        fields["end_date"] = ensure_utc(data.end_date)

        project = await self.repository.create(principal.id, fields, members)
        await self.db.commit()
        project = await self.repository.get_by_id(project.id)
        logger.info("User %s created project %s", principal.id, project.id)

        await self._record(
            principal, ActivityAction.CREATED, project.id, project.name,
            data.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return project

    async def update_project(self, principal, project_id: UUID, data: ProjectUpdate) -> Project:
        project = await self._get_managed(principal, project_id)
        changes = data.changes()
        for field in ("name", "status", "priority", "color", "tags"):
            if field in changes and changes[field] is None:
                raise ValidationAppError(
                    "Validation failed", [{"field": field, "message": "Cannot be null"}]
                )
        for field in ("start_date", "end_date"):
            if field in changes:
                changes[field] = ensure_utc(changes[field])

        await self.repository.update(project, changes)
        await self.db.commit()
        project = await self.repository.get_by_id(project.id)

        await self._record(
            principal, ActivityAction.UPDATED, project.id, project.name,
            data.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return project

    async def delete_project(self, principal, project_id: UUID) -> None:
        project = await self._get_managed(principal, project_id)
        name = project.name

        await self.repository.delete(project)
        await self.db.commit()
        logger.info("User %s deleted project %s", principal.id, project_id)
        if self.notifier is not None:
            self.notifier.drop_scope(project_scope(project_id))

        await self._record(principal, ActivityAction.DELETED, project_id, name)

    async def add_member(self, principal, project_id: UUID, user_id: UUID) -> Project:
        project = await self._get_managed(principal, project_id)
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise ValidationAppError(
                "Validation failed", [{"field": "userId", "message": "User not found"}]
            )

        await self.repository.add_member(project, user)
        await self.db.commit()
        project = await self.repository.get_by_id(project.id)

        await self._record(
            principal, ActivityAction.UPDATED, project.id, project.name, {"addedMember": str(user_id)}
        )
        return project

    async def remove_member(self, principal, project_id: UUID, user_id: UUID) -> Project:
        project = await self._get_managed(principal, project_id)
        if user_id not in project.member_ids:
            raise NotFoundError("Member not found")

        await self.repository.remove_member(project, user_id)
        await self.db.commit()
        project = await self.repository.get_by_id(project.id)
        await self._revoke_live_access(project, user_id)

        await self._record(
            principal, ActivityAction.UPDATED, project.id, project.name, {"removedMember": str(user_id)}
        )
        return project
