"""Queue persistence for task notification events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from app.core.config import settings
from app.core.logging import get_logger
from app.services.queue import QueuedTask, enqueue_task, utc_now
from app.services.queue import requeue_if_failed as _requeue_if_failed

logger = get_logger(__name__)
TASK_TYPE = "task_notification"


@dataclass(frozen=True)
class TaskNotification:
    """A task lifecycle event addressed to one or more users."""

    event_type: str  # task.assigned | task.completed | task.approved | task.rejected
    task_id: UUID
    target_user_ids: list[UUID] = field(default_factory=list)
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    attempts: int = 0

    def to_queued_task(self) -> QueuedTask:
        return QueuedTask(
            task_type=TASK_TYPE,
            payload={
                "event_type": self.event_type,
                "task_id": str(self.task_id),
                "target_user_ids": [str(user_id) for user_id in self.target_user_ids],
                "payload": self.payload,
            },
            created_at=self.created_at,
            attempts=self.attempts,
        )


def decode_notification_task(task: QueuedTask) -> TaskNotification:
    """Rebuild a TaskNotification from a dequeued envelope."""
    if task.task_type != TASK_TYPE:
        raise ValueError(f"Unexpected task_type={task.task_type!r}; expected {TASK_TYPE!r}")
    data = task.payload
    return TaskNotification(
        event_type=str(data["event_type"]),
        task_id=UUID(data["task_id"]),
        target_user_ids=[UUID(raw) for raw in data.get("target_user_ids", [])],
        payload=dict(data.get("payload") or {}),
        created_at=task.created_at,
        attempts=task.attempts,
    )


def enqueue_notification(notification: TaskNotification) -> bool:
    """Queue a notification. Failures are logged, never raised."""
    queued = enqueue_task(
        notification.to_queued_task(),
        settings.rq_queue_name,
        redis_url=settings.rq_redis_url,
    )
    if not queued:
        logger.warning(
            "task.notification.enqueue_failed",
            extra={"event_type": notification.event_type, "task_id": str(notification.task_id)},
        )
    return queued


def requeue_notification(notification: TaskNotification, *, delay_seconds: float = 0) -> bool:
    return _requeue_if_failed(
        notification.to_queued_task(),
        settings.rq_queue_name,
        max_retries=settings.rq_dispatch_max_retries,
        redis_url=settings.rq_redis_url,
        delay_seconds=delay_seconds,
    )
