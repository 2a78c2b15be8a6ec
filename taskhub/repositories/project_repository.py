"""
Project repository - database operations for Project and its membership.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.models.project import Project, project_member
from taskhub.models.task import Task
from taskhub.models.user import User


def accessible_project_ids(user_id: UUID):
    """Sub-select of project ids the user owns or is a member of."""
    member_of = select(project_member.c.project_id).where(project_member.c.user_id == user_id)
    return select(Project.id).where(or_(Project.owner == user_id, Project.id.in_(member_of)))


class ProjectRepository:
    """Repository for Project database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, project_id: UUID) -> Optional[Project]:
        result = await self.db.execute(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: Optional[UUID]) -> List[Project]:
        """Projects visible to a user; ``None`` means all (admin)."""
        query = select(Project)
        if user_id is not None:
            query = query.where(Project.id.in_(accessible_project_ids(user_id)))
        query = query.order_by(Project.created_at.desc(), Project.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create(self, owner_id: UUID, data: dict, members: List[User]) -> Project:
        project = Project(owner=owner_id, **data)
        project.members = list(members)
        self.db.add(project)
        await self.db.flush()
        return project

    async def update(self, project: Project, data: dict) -> Project:
        for field, value in data.items():
            setattr(project, field, value)
        await self.db.flush()
        return project

    async def add_member(self, project: Project, user: User) -> Project:
        if user.id not in project.member_ids:
            project.members.append(user)
            await self.db.flush()
        return project

    async def remove_member(self, project: Project, user_id: UUID) -> Project:
        project.members = [member for member in project.members if member.id != user_id]
        await self.db.flush()
        return project

    async def delete(self, project: Project) -> None:
        """Delete a project; its tasks survive with the reference cleared."""
        await self.db.execute(
            update(Task).where(Task.project == project.id).values({Task.project: None})
        )
        await self.db.delete(project)
        await self.db.flush()
