"""Redis list-backed queue for background notification work.

Ready envelopes live in a Redis list; retries with a delay wait in a sorted
set (`<queue>:scheduled`, scored by due time) and are moved onto the list by
the consumer once they fall due.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, cast

import redis

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_SCHEDULED_SUFFIX = ":scheduled"
_PROMOTE_BATCH_SIZE = 100


@dataclass(frozen=True)
class QueuedTask:
    """Envelope stored on the queue: a task type plus a JSON payload."""

    task_type: str
    payload: dict[str, Any]
    created_at: datetime
    attempts: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "task_type": self.task_type,
                "payload": self.payload,
                "created_at": self.created_at.isoformat(),
                "attempts": self.attempts,
            },
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> QueuedTask:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data: dict[str, Any] = json.loads(raw)
        return cls(
            task_type=str(data["task_type"]),
            payload=dict(data.get("payload") or {}),
            created_at=datetime.fromisoformat(data["created_at"]),
            attempts=int(data.get("attempts", 0)),
        )


def _redis_client(redis_url: str | None = None) -> redis.Redis:
    return redis.Redis.from_url(redis_url or settings.rq_redis_url)


def _scheduled_key(queue_name: str) -> str:
    return f"{queue_name}{_SCHEDULED_SUFFIX}"


def _now_seconds() -> float:
    return time.time()


def _promote_due(client: redis.Redis, queue_name: str) -> float | None:
    """Move due scheduled envelopes onto the ready list.

    Returns seconds until the next scheduled envelope, or None if none remain.
    """
    key = _scheduled_key(queue_name)
    now = _now_seconds()
    due = cast(
        list[str | bytes],
        client.zrangebyscore(key, "-inf", now, start=0, num=_PROMOTE_BATCH_SIZE),
    )
    if due:
        client.lpush(queue_name, *due)
        client.zrem(key, *due)
        logger.debug(
            "queue.promote_scheduled",
            extra={"queue_name": queue_name, "count": len(due)},
        )
    upcoming = cast(
        list[tuple[str | bytes, float]],
        client.zrangebyscore(key, now, "+inf", start=0, num=1, withscores=True),
    )
    if not upcoming:
        return None
    return max(0.0, float(upcoming[0][1]) - now)


def enqueue_task(
    task: QueuedTask,
    queue_name: str,
    *,
    redis_url: str | None = None,
    delay_seconds: float = 0,
) -> bool:
    """Push an envelope onto the queue, optionally after a delay.

    Returns False instead of raising when Redis is unreachable.
    """
    delay = max(0.0, float(delay_seconds))
    try:
        client = _redis_client(redis_url=redis_url)
        if delay > 0:
            client.zadd(_scheduled_key(queue_name), {task.to_json(): _now_seconds() + delay})
        else:
            client.lpush(queue_name, task.to_json())
    except redis.RedisError as exc:
        logger.warning(
            "queue.enqueue_failed",
            extra={"task_type": task.task_type, "queue_name": queue_name, "error": str(exc)},
        )
        return False
    logger.info(
        "queue.enqueued",
        extra={
            "task_type": task.task_type,
            "queue_name": queue_name,
            "attempt": task.attempts,
            "delay_seconds": delay,
        },
    )
    return True


def dequeue_task(
    queue_name: str,
    *,
    redis_url: str | None = None,
    block: bool = False,
    block_timeout: float = 0,
) -> QueuedTask | None:
    """Pop the oldest ready envelope, or None when the queue is empty."""
    client = _redis_client(redis_url=redis_url)
    next_due = _promote_due(client, queue_name)
    raw: str | bytes | None
    if block:
        timeout = max(0.0, float(block_timeout))
        if next_due is not None:
            timeout = min(timeout, next_due) if timeout else next_due
        popped = cast(
            tuple[str | bytes, str | bytes] | None,
            client.brpop([queue_name], timeout=timeout),
        )
        raw = popped[1] if popped is not None else None
    else:
        raw = cast(str | bytes | None, client.rpop(queue_name))
    if raw is None:
        return None
    try:
        return QueuedTask.from_json(raw)
    except (KeyError, TypeError, ValueError):
        logger.error(
            "queue.decode_failed",
            extra={"queue_name": queue_name, "raw_payload": str(raw)},
        )
        raise


def requeue_if_failed(
    task: QueuedTask,
    queue_name: str,
    *,
    max_retries: int,
    redis_url: str | None = None,
    delay_seconds: float = 0,
) -> bool:
    """Requeue a failed envelope with its attempt count bumped.

    Returns False once `max_retries` is exhausted.
    """
    retry = replace(task, attempts=task.attempts + 1)
    if retry.attempts > max_retries:
        logger.warning(
            "queue.drop_failed_task",
            extra={
                "task_type": task.task_type,
                "queue_name": queue_name,
                "attempts": retry.attempts,
            },
        )
        return False
    return enqueue_task(retry, queue_name, redis_url=redis_url, delay_seconds=delay_seconds)


def utc_now() -> datetime:
    return datetime.now(UTC)
