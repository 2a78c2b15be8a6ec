"""
Project router - grouping tasks and sharing them with members.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from taskhub.core.dependencies import get_current_user, get_project_service
from taskhub.models.user import User
from taskhub.schemas.base import MessageResponse
from taskhub.schemas.project import (
    MemberAdd,
    ProjectCreate,
    ProjectEnvelope,
    ProjectList,
    ProjectRead,
    ProjectUpdate,
)
from taskhub.services.project_service import ProjectService

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.get("", response_model=ProjectList)
async def list_projects(
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """Projects the caller owns or is a member of (all projects for admins)."""
    projects = await service.list_projects(current_user)
    return ProjectList(projects=[ProjectRead.model_validate(project) for project in projects])


@router.get("/{project_id}", response_model=ProjectEnvelope)
async def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.get_project(current_user, project_id)
    return ProjectEnvelope(data=ProjectRead.model_validate(project))


@router.post("", response_model=ProjectEnvelope, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.create_project(current_user, data)
    return ProjectEnvelope(data=ProjectRead.model_validate(project))


@router.put("/{project_id}", response_model=ProjectEnvelope)
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """Owner or admin only."""
    project = await service.update_project(current_user, project_id, data)
    return ProjectEnvelope(data=ProjectRead.model_validate(project))


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """Owner or admin only. Tasks in the project are kept and detached."""
    await service.delete_project(current_user, project_id)
    return MessageResponse(message="Project deleted successfully")


@router.post("/{project_id}/members", response_model=ProjectEnvelope)
async def add_member(
    project_id: UUID,
    data: MemberAdd,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.add_member(current_user, project_id, data.user_id)
    return ProjectEnvelope(data=ProjectRead.model_validate(project))


@router.delete("/{project_id}/members/{user_id}", response_model=ProjectEnvelope)
async def remove_member(
    project_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.remove_member(current_user, project_id, user_id)
    return ProjectEnvelope(data=ProjectRead.model_validate(project))
