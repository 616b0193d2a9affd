"""Performance statistics response schemas."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (UUID,)


class TopPerformerRead(SQLModel):
    user_id: UUID
    username: str
    tasks_completed: int = Field(ge=0)


class TopPerformersResponse(SQLModel):
    """Top performers over the trailing 7-day and 30-day windows."""

    weekly: list[TopPerformerRead] = Field(default_factory=list)
    monthly: list[TopPerformerRead] = Field(default_factory=list)
