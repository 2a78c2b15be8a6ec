"""
Activity feed router.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from taskhub.core.dependencies import get_activity_service, get_current_user
from taskhub.models.user import User
from taskhub.schemas.activity_log import ActivityLogList, ActivityLogRead
from taskhub.services.activity_service import ActivityService

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.get("", response_model=ActivityLogList)
async def list_activities(
    entity_id: Optional[UUID] = Query(None, alias="entityId"),
    limit: int = 20,
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """Newest first. Members only see entries they caused."""
    activities = await service.list_activities(current_user, entity_id=entity_id, limit=limit)
    return ActivityLogList(activities=[ActivityLogRead.model_validate(entry) for entry in activities])
