"""
ActivityLog repository - append and read the audit trail.
"""

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.models.activity_log import ActivityLog


class ActivityRepository:
    """Repository for ActivityLog database operations. Insert-only."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: UUID,
        action: str,
        entity_type: str,
        entity_id: UUID,
        entity_name: str,
        details: Optional[str] = None,
        changes: Optional[Any] = None,
    ) -> ActivityLog:
        activity = ActivityLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name[:200],
            details=details,
            changes=changes,
        )
        self.db.add(activity)
        await self.db.flush()
        return activity

    async def list(
        self,
        user_id: Optional[UUID] = None,
        entity_id: Optional[UUID] = None,
        limit: int = 20,
    ) -> List[ActivityLog]:
        """Newest first. ``user_id=None`` lists every user's activity."""
        query = select(ActivityLog)
        if user_id is not None:
            query = query.where(ActivityLog.user_id == user_id)
        if entity_id is not None:
            query = query.where(ActivityLog.entity_id == entity_id)
        query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
