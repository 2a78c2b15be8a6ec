"""
Models package.

Import all models here so they are registered with SQLAlchemy.
This file also makes it easy to import models from one place.
"""

from taskhub.models.user import User
from taskhub.models.project import Project, project_member
from taskhub.models.task import Task, TaskComment
from taskhub.models.activity_log import ActivityLog

# Export all models
__all__ = [
    "User",
    "Project",
    "project_member",
    "Task",
    "TaskComment",
    "ActivityLog",
]
