"""Task notification queueing and dispatch."""

from app.services.task_notifications.queue import (
    TASK_TYPE,
    TaskNotification,
    decode_notification_task,
    enqueue_notification,
)

__all__ = [
    "TASK_TYPE",
    "TaskNotification",
    "decode_notification_task",
    "enqueue_notification",
]
