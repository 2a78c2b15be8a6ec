"""
Schemas package.

Import all schemas here for easy access.
"""

from taskhub.schemas.user import (
    RegisterRequest,
    LoginRequest,
    ProfileUpdate,
    ChangePasswordRequest,
    UserRead,
    AuthResponse,
)
from taskhub.schemas.task import (
    TaskCreate,
    TaskUpdate,
    TaskAssign,
    TaskRead,
    TaskFilters,
    CommentCreate,
    CommentRead,
    SortField,
    SortOrder,
)
from taskhub.schemas.project import ProjectCreate, ProjectUpdate, ProjectRead, MemberAdd
from taskhub.schemas.activity_log import ActivityLogRead

__all__ = [
    # User / auth
    "RegisterRequest", "LoginRequest", "ProfileUpdate", "ChangePasswordRequest",
    "UserRead", "AuthResponse",
    # Task
    "TaskCreate", "TaskUpdate", "TaskAssign", "TaskRead", "TaskFilters",
    "CommentCreate", "CommentRead", "SortField", "SortOrder",
    # Project
    "ProjectCreate", "ProjectUpdate", "ProjectRead", "MemberAdd",
    # ActivityLog
    "ActivityLogRead",
]
