"""Direct chat message model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Message(QueryModel, table=True):
    """One message between two users."""

    __tablename__ = "messages"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    sender_id: UUID = Field(foreign_key="users.id", index=True)
    receiver_id: UUID = Field(foreign_key="users.id", index=True)
    content: str
    edited: bool = Field(default=False)
    read: bool = Field(default=False)
    read_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
