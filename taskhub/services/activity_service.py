"""
Activity feed read access.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.permissions import check_is_admin
from taskhub.errors import ValidationAppError
from taskhub.models.activity_log import ActivityLog
from taskhub.repositories.activity_repository import ActivityRepository

MAX_ACTIVITY_LIMIT = 100


class ActivityService:
    """Members see their own trail; admins see everyone's."""

    def __init__(self, db: AsyncSession):
        self.repository = ActivityRepository(db)

    async def list_activities(
        self,
        principal,
        entity_id: Optional[UUID] = None,
        limit: int = 20,
    ) -> List[ActivityLog]:
        if limit < 1 or limit > MAX_ACTIVITY_LIMIT:
            raise ValidationAppError(f"Limit must be between 1 and {MAX_ACTIVITY_LIMIT}")
        user_id = None if check_is_admin(principal) else principal.id
        return await self.repository.list(user_id=user_id, entity_id=entity_id, limit=limit)
