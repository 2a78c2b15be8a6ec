"""
Activity logger: best-effort audit trail of successful mutations.

Entries are written in their own session after the triggering
transaction has committed. A failed write is logged and dropped; it
never reaches the caller and is never retried.
"""

import logging
from typing import Any, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskhub.models.activity_log import ActivityLog
from taskhub.models.enums import ActivityAction, EntityType
from taskhub.repositories.activity_repository import ActivityRepository

logger = logging.getLogger(__name__)


def describe_activity(action: ActivityAction, entity_type: EntityType) -> str:
    """Human readable summary, e.g. 'created a new task'."""
    entity = entity_type.value
    action_map = {
        ActivityAction.CREATED: f"created a new {entity}",
        ActivityAction.UPDATED: f"updated a {entity}",
        ActivityAction.DELETED: f"deleted a {entity}",
        ActivityAction.ASSIGNED: f"assigned a {entity}",
        ActivityAction.COMPLETED: f"completed a {entity}",
        ActivityAction.COMMENTED: f"commented on a {entity}",
    }
    return action_map.get(action, f"performed {action.value} on {entity}")


class ActivityLogger:
    """Writes ActivityLog rows through a dedicated session per entry."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(
        self,
        user_id: UUID,
        action: ActivityAction,
        entity_type: EntityType,
        entity_id: UUID,
        entity_name: str,
        changes: Optional[Any] = None,
    ) -> Optional[ActivityLog]:
        """Record one entry. Returns None if the write failed."""
        try:
            async with self.session_factory() as session:
                repository = ActivityRepository(session)
                activity = await repository.create(
                    user_id=user_id,
                    action=action.value,
                    entity_type=entity_type.value,
                    entity_id=entity_id,
                    entity_name=entity_name or "Unknown",
                    details=describe_activity(action, entity_type),
                    changes=jsonable_encoder(changes) if changes is not None else None,
                )
                await session.commit()
                return activity
        except Exception:
            logger.exception(
                "Could not record %s %s activity for %s",
                action.value,
                entity_type.value,
                entity_id,
            )
            return None
