"""Queue worker that dispatches envelopes by task type."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.services.queue import QueuedTask, dequeue_task
from app.services.task_notifications.dispatch import (
    process_notification_task,
    requeue_notification_task,
)
from app.services.task_notifications.queue import TASK_TYPE as NOTIFICATION_TASK_TYPE

logger = get_logger(__name__)
_WORKER_BLOCK_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class _TaskHandler:
    handler: Callable[[QueuedTask], Awaitable[None]]
    requeue: Callable[[QueuedTask, float], bool]


_TASK_HANDLERS: dict[str, _TaskHandler] = {
    NOTIFICATION_TASK_TYPE: _TaskHandler(
        handler=process_notification_task,
        requeue=lambda task, delay: requeue_notification_task(task, delay_seconds=delay),
    ),
}


def retry_delay_seconds(attempts: int) -> float:
    """Exponential backoff capped at `rq_dispatch_retry_max_seconds`."""
    return min(
        settings.rq_dispatch_retry_base_seconds * (2 ** max(0, attempts)),
        settings.rq_dispatch_retry_max_seconds,
    )


def _compute_jitter(base_delay: float) -> float:
    return random.uniform(0, min(settings.rq_dispatch_retry_max_seconds / 10, base_delay * 0.1))


async def _handle(task: QueuedTask) -> bool:
    handler = _TASK_HANDLERS.get(task.task_type)
    if handler is None:
        logger.warning("queue.worker.task_unhandled", extra={"task_type": task.task_type})
        return False
    try:
        await handler.handler(task)
    except Exception as exc:
        logger.exception(
            "queue.worker.failed",
            extra={"task_type": task.task_type, "attempt": task.attempts, "error": str(exc)},
        )
        base_delay = retry_delay_seconds(task.attempts)
        if not handler.requeue(task, base_delay + _compute_jitter(base_delay)):
            logger.warning(
                "queue.worker.drop_task",
                extra={"task_type": task.task_type, "attempt": task.attempts},
            )
        return False
    logger.info(
        "queue.worker.success",
        extra={"task_type": task.task_type, "attempt": task.attempts},
    )
    return True


async def flush_queue(*, block: bool = False, block_timeout: float = 0) -> int:
    """Drain ready envelopes and return how many were handled successfully."""
    processed = 0
    while True:
        task = dequeue_task(
            settings.rq_queue_name,
            redis_url=settings.rq_redis_url,
            block=block,
            block_timeout=block_timeout,
        )
        if task is None:
            break
        if await _handle(task):
            processed += 1
        await asyncio.sleep(settings.rq_dispatch_throttle_seconds)
    if processed:
        logger.info("queue.worker.batch_complete", extra={"count": processed})
    return processed


async def _run_worker_loop() -> None:
    while True:
        try:
            # Finite timeout so scheduled retries are promoted regularly.
            await flush_queue(block=True, block_timeout=_WORKER_BLOCK_TIMEOUT_SECONDS)
        except Exception:
            logger.exception(
                "queue.worker.loop_failed",
                extra={"queue_name": settings.rq_queue_name},
            )
            await asyncio.sleep(1)


def run_worker() -> None:
    """Console entrypoint for continuous queue processing."""
    configure_logging()
    logger.info(
        "queue.worker.started",
        extra={
            "queue_name": settings.rq_queue_name,
            "throttle_seconds": settings.rq_dispatch_throttle_seconds,
        },
    )
    try:
        asyncio.run(_run_worker_loop())
    finally:
        logger.info("queue.worker.stopped", extra={"queue_name": settings.rq_queue_name})
