"""Worker-side handler for task notification envelopes."""

from __future__ import annotations

from app.core.logging import get_logger
from app.services.queue import QueuedTask
from app.services.task_notifications.queue import (
    TaskNotification,
    decode_notification_task,
    requeue_notification,
)

logger = get_logger(__name__)


def _dispatch(notification: TaskNotification) -> None:
    """Deliver a notification.

    Delivery is log-only for now; email or push integrations hook in here.
    """
    logger.info(
        "task.notification.dispatch",
        extra={
            "event_type": notification.event_type,
            "task_id": str(notification.task_id),
            "target_user_ids": [str(user_id) for user_id in notification.target_user_ids],
            "attempt": notification.attempts,
        },
    )


async def process_notification_task(task: QueuedTask) -> None:
    _dispatch(decode_notification_task(task))


def requeue_notification_task(task: QueuedTask, *, delay_seconds: float = 0) -> bool:
    return requeue_notification(decode_notification_task(task), delay_seconds=delay_seconds)
