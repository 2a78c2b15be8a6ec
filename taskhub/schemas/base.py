"""
Base Pydantic schemas with common fields.

The JSON API speaks camelCase; Python code uses snake_case.
Input accepts either spelling.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every request/response schema."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiRead(ApiModel):
    """
    Base schema for reading stored records.

    Includes the auto-generated fields like id and timestamps.
    """

    id: UUID
    created_at: datetime
    updated_at: datetime


class MessageResponse(ApiModel):
    message: str
