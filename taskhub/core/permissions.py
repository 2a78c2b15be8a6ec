"""
Authorization policy for tasks and projects.

Explicit allow-list: every check returns False unless one of the rules
below grants the operation.

Task rules, in order:
1. admin: always allowed
2. creator or assignee: read / update / comment; creator only: delete / assign
3. task in a project: the project's owner and members may also read
"""

from enum import Enum
from typing import Optional

from taskhub.models.enums import UserRole


class TaskOperation(str, Enum):
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    COMMENT = "comment"
    ASSIGN = "assign"


_CREATOR_OR_ASSIGNEE_OPS = {TaskOperation.READ, TaskOperation.UPDATE, TaskOperation.COMMENT}
_CREATOR_ONLY_OPS = {TaskOperation.DELETE, TaskOperation.ASSIGN}


def check_is_admin(principal) -> bool:
    """Check if principal is admin."""
    return principal is not None and principal.role == UserRole.ADMIN.value


def can_perform(principal, operation: TaskOperation, task, project=None) -> bool:
    """
    Decide whether principal may perform operation on task.

    Args:
        principal: The acting user (anything with ``id`` and ``role``), or None
        operation: The requested TaskOperation
        task: The target task (``created_by``, ``assigned_to``, ``project``)
        project: The task's project, when it has one

    Returns:
        True if permitted, False otherwise
    """
    if principal is None or task is None:
        return False

    if check_is_admin(principal):
        return True

    is_creator = task.created_by == principal.id
    is_assignee = task.assigned_to is not None and task.assigned_to == principal.id

    if operation in _CREATOR_ONLY_OPS:
        return is_creator

    if operation in _CREATOR_OR_ASSIGNEE_OPS and (is_creator or is_assignee):
        return True

    if operation == TaskOperation.READ and _project_grants_read(principal, task, project):
        return True

    return False


def _project_grants_read(principal, task, project) -> bool:
    if project is None or task.project is None or project.id != task.project:
        return False
    return project.has_access(principal.id)


def can_access_project(principal, project: Optional[object]) -> bool:
    """Read a project, add tasks to it, or follow its live updates."""
    if principal is None or project is None:
        return False
    return check_is_admin(principal) or project.has_access(principal.id)


def can_manage_project(principal, project: Optional[object]) -> bool:
    """Edit, delete, or change membership of a project."""
    if principal is None or project is None:
        return False
    return check_is_admin(principal) or project.owner == principal.id
