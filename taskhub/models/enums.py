"""
Enumerations shared by models, schemas and services.

Values are stored as plain strings in the database.
"""

from enum import Enum


class UserRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Sort rank, higher is more severe
PRIORITY_RANK = {
    TaskPriority.LOW.value: 1,
    TaskPriority.MEDIUM.value: 2,
    TaskPriority.HIGH.value: 3,
    TaskPriority.URGENT.value: 4,
}


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    ON_HOLD = "on-hold"


class ProjectPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActivityAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    COMMENTED = "commented"


class EntityType(str, Enum):
    TASK = "task"
    PROJECT = "project"
    USER = "user"
