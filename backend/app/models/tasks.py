"""Task model and status workflow constants."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class TaskStatus(str, Enum):
    """Lifecycle states of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    APPROVED = "approved"
    REJECTED = "rejected"


REVIEW_STATUSES = frozenset({TaskStatus.APPROVED.value, TaskStatus.REJECTED.value})
# Statuses counted as finished work by the performance stats.
DONE_STATUSES = frozenset({TaskStatus.COMPLETED.value, TaskStatus.APPROVED.value})

COMPLETED_PERCENTAGE = 100
REJECTED_PERCENTAGE = 70


class Task(QueryModel, table=True):
    """Assigned unit of work tracked through the review workflow."""

    __tablename__ = "tasks"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    description: str
    status: str = Field(default=TaskStatus.PENDING.value, index=True)
    completion_percentage: int = Field(default=0)
    due_date: datetime
    assigned_to: UUID = Field(foreign_key="users.id", index=True)
    created_by: UUID = Field(foreign_key="users.id", index=True)
    attachment_url: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)
