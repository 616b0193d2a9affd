"""Chat message request and acknowledgement schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, Field
from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class MessageCreate(SQLModel):
    receiver_id: UUID = Field(validation_alias=AliasChoices("receiver_id", "receiverId"))
    content: str = Field(min_length=1, max_length=4000)


class MessageUpdate(SQLModel):
    content: str = Field(min_length=1, max_length=4000)


class MessageRead(SQLModel):
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    edited: bool
    read: bool
    read_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class MessageDeleteAck(SQLModel):
    message_id: UUID


class TypingUpdate(SQLModel):
    receiver_id: UUID = Field(validation_alias=AliasChoices("receiver_id", "receiverId"))
    is_typing: bool = Field(validation_alias=AliasChoices("is_typing", "isTyping"))


class TypingAck(SQLModel):
    receiver_id: UUID
    is_typing: bool
