"""Task API schemas for create, update, and read operations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, Field
from sqlmodel import SQLModel
from sqlmodel._compat import SQLModelConfig

from app.models.tasks import TaskStatus
from app.models.users import UserRole

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class TaskCreate(SQLModel):
    """Payload for creating a task. Accepts snake_case or camelCase keys."""

    model_config = SQLModelConfig(extra="forbid", populate_by_name=True)

    title: str = Field(min_length=1, examples=["Quarterly report"])
    description: str = Field(min_length=1, examples=["Compile Q3 numbers."])
    due_date: datetime = Field(validation_alias=AliasChoices("due_date", "dueDate"))
    assigned_to: UUID = Field(validation_alias=AliasChoices("assigned_to", "assignedTo"))
    created_by: UUID | None = Field(
        default=None,
        validation_alias=AliasChoices("created_by", "createdBy"),
    )
    status: TaskStatus = TaskStatus.PENDING
    completion_percentage: int = Field(
        default=0,
        validation_alias=AliasChoices("completion_percentage", "completionPercentage"),
        ge=0,
        le=100,
    )
    attachment_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("attachment_url", "attachmentUrl"),
    )


class TaskUpdate(SQLModel):
    """Partial update. Only the fields listed here can ever be written."""

    model_config = SQLModelConfig(extra="forbid", populate_by_name=True)

    title: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    status: TaskStatus | None = None
    completion_percentage: int | None = Field(
        default=None,
        validation_alias=AliasChoices("completion_percentage", "completionPercentage"),
        ge=0,
        le=100,
    )
    due_date: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("due_date", "dueDate"),
    )
    assigned_to: UUID | None = Field(
        default=None,
        validation_alias=AliasChoices("assigned_to", "assignedTo"),
    )
    attachment_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("attachment_url", "attachmentUrl"),
    )


class TaskRead(SQLModel):
    """Task payload with assignee and creator join data."""

    id: UUID
    title: str
    description: str
    status: TaskStatus
    completion_percentage: int
    due_date: datetime
    assigned_to: UUID
    created_by: UUID
    attachment_url: str | None = None
    created_at: datetime
    updated_at: datetime
    assigned_username: str | None = None
    assigned_role: UserRole | None = None
    creator_username: str | None = None
