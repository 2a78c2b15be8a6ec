"""
Project Pydantic schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BeforeValidator, Field, StringConstraints, field_validator

from taskhub.models.enums import ProjectPriority, ProjectStatus
from taskhub.schemas.base import ApiModel, ApiRead
from taskhub.schemas.task import Tags, _lower

ProjectName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
ProjectDescription = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]
ColorTag = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)]


class ProjectCreate(ApiModel):
    name: ProjectName
    description: Optional[ProjectDescription] = None
    status: Annotated[ProjectStatus, BeforeValidator(_lower)] = ProjectStatus.ACTIVE
    priority: Annotated[ProjectPriority, BeforeValidator(_lower)] = ProjectPriority.MEDIUM
    color: ColorTag = "#3B82F6"
    tags: Tags = Field(default_factory=list)
    members: List[UUID] = Field(default_factory=list)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ProjectUpdate(ApiModel):
    name: Optional[ProjectName] = None
    description: Optional[ProjectDescription] = None
    status: Optional[Annotated[ProjectStatus, BeforeValidator(_lower)]] = None
    priority: Optional[Annotated[ProjectPriority, BeforeValidator(_lower)]] = None
    color: Optional[ColorTag] = None
    tags: Optional[Tags] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.value
        return data


class MemberAdd(ApiModel):
    user_id: UUID


class ProjectRead(ApiRead):
    name: str
    description: Optional[str] = None
    owner: UUID
    members: List[UUID] = []
    status: str
    priority: str
    color: str
    tags: List[str] = []
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("members", mode="before")
    @classmethod
    def _member_ids(cls, value):
        # ORM relationship yields User rows
        if value is None:
            return []
        return [getattr(member, "id", member) for member in value]


class ProjectEnvelope(ApiModel):
    data: ProjectRead


class ProjectList(ApiModel):
    projects: List[ProjectRead]
