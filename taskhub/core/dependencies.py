"""
FastAPI dependencies for the application.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.config import Settings, settings as default_settings
from taskhub.db.session import get_db
from taskhub.errors import InvalidTokenError
from taskhub.models.user import User
from taskhub.services.activity_logger import ActivityLogger
from taskhub.services.activity_service import ActivityService
from taskhub.services.auth_service import AuthService
from taskhub.services.notifier import ChangeNotifier
from taskhub.services.project_service import ProjectService
from taskhub.services.task_service import TaskService

# Security scheme for JWT bearer tokens; missing tokens are reported by us
security = HTTPBearer(auto_error=False)

__all__ = [
    "get_db",
    "get_settings",
    "get_notifier",
    "get_activity_logger",
    "get_current_user",
    "get_auth_service",
    "get_task_service",
    "get_project_service",
    "get_activity_service",
]


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", default_settings)


def get_notifier(request: Request) -> Optional[ChangeNotifier]:
    return getattr(request.app.state, "notifier", None)


def get_activity_logger(request: Request) -> Optional[ActivityLogger]:
    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        return None
    return ActivityLogger(factory)


async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    activity_logger: Optional[ActivityLogger] = Depends(get_activity_logger),
) -> AuthService:
    return AuthService(db, settings=settings, activity_logger=activity_logger)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Get the current authenticated user from the bearer token.

    Raises:
        InvalidTokenError / ExpiredTokenError: token missing, malformed or expired
        PrincipalNotFoundError: token is fine but the user is gone
    """
    if credentials is None or not credentials.credentials:
        raise InvalidTokenError("Access denied. No token provided.")
    return await auth_service.resolve_principal(credentials.credentials)


async def get_task_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
    activity_logger: Optional[ActivityLogger] = Depends(get_activity_logger),
) -> TaskService:
    return TaskService(db, notifier=notifier, activity_logger=activity_logger, settings=settings)


async def get_project_service(
    db: AsyncSession = Depends(get_db),
    activity_logger: Optional[ActivityLogger] = Depends(get_activity_logger),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
) -> ProjectService:
    return ProjectService(db, activity_logger=activity_logger, notifier=notifier)


async def get_activity_service(db: AsyncSession = Depends(get_db)) -> ActivityService:
    return ActivityService(db)
