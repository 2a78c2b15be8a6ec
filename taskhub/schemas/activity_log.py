"""
ActivityLog Pydantic schemas.
"""

from typing import Any, List, Optional
from uuid import UUID

from taskhub.schemas.base import ApiRead, ApiModel


class ActivityLogRead(ApiRead):
    """Schema for reading an audit trail entry."""

    user_id: UUID
    action: str
    entity_type: str
    entity_id: UUID
    entity_name: str
    details: Optional[str] = None
    changes: Optional[Any] = None


class ActivityLogList(ApiModel):
    activities: List[ActivityLogRead]
