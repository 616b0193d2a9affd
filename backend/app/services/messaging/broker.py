"""In-process pub/sub for chat events with bounded per-user replay buffers.

Each published event gets an id from a per-process counter. Subscribers that
reconnect with the last id they saw receive the buffered events after it
before any live ones, so delivery is at-least-once and clients de-duplicate
by id. Ordering is only guaranteed within one process.
"""

from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.core.config import settings
from app.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from uuid import UUID

logger = get_logger(__name__)

MESSAGE_RECEIVED = "message_received"
MESSAGE_UPDATED = "message_updated"
MESSAGE_DELETED = "message_deleted"
TYPING_STATUS = "typing_status"


@dataclass(frozen=True)
class ChatEvent:
    id: int
    event: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_sse(self) -> dict[str, str]:
        return {"id": str(self.id), "event": self.event, "data": json.dumps(self.data)}


class ChatBroker:
    """Fan chat events out to the live streams of each participant."""

    def __init__(self, *, buffer_size: int) -> None:
        self._buffer_size = buffer_size
        self._last_id = 0
        self._buffers: dict[UUID, deque[ChatEvent]] = {}
        self._subscribers: dict[UUID, set[asyncio.Queue[ChatEvent]]] = {}

    @property
    def last_event_id(self) -> int:
        return self._last_id

    def publish(self, event: str, data: dict[str, Any], *, user_ids: Iterable[UUID]) -> ChatEvent:
        """Buffer and deliver one event to every distinct recipient."""
        self._last_id += 1
        chat_event = ChatEvent(id=self._last_id, event=event, data=data)
        for user_id in dict.fromkeys(user_ids):
            buffer = self._buffers.get(user_id)
            if buffer is None:
                buffer = self._buffers[user_id] = deque(maxlen=self._buffer_size)
            buffer.append(chat_event)
            for queue in self._subscribers.get(user_id, ()):
                try:
                    queue.put_nowait(chat_event)
                except asyncio.QueueFull:
                    # The stream backfills the dropped event from the replay buffer.
                    logger.warning(
                        "chat.broker.subscriber_overflow",
                        extra={"user_id": str(user_id), "event_id": chat_event.id},
                    )
        return chat_event

    def replay(self, user_id: UUID, *, after: int) -> list[ChatEvent]:
        """Return buffered events for `user_id` with ids greater than `after`."""
        return [event for event in self._buffers.get(user_id, ()) if event.id > after]

    def _subscribe(self, user_id: UUID) -> asyncio.Queue[ChatEvent]:
        queue: asyncio.Queue[ChatEvent] = asyncio.Queue(maxsize=self._buffer_size)
        self._subscribers.setdefault(user_id, set()).add(queue)
        return queue

    def _unsubscribe(self, user_id: UUID, queue: asyncio.Queue[ChatEvent]) -> None:
        queues = self._subscribers.get(user_id)
        if queues is None:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]

    def subscriber_count(self, user_id: UUID) -> int:
        return len(self._subscribers.get(user_id, ()))

    async def stream(
        self,
        user_id: UUID,
        *,
        last_event_id: int | None = None,
    ) -> AsyncIterator[ChatEvent]:
        """Yield replayed then live events for `user_id` until cancelled."""
        queue = self._subscribe(user_id)
        seen = last_event_id if last_event_id is not None else self._last_id
        try:
            if last_event_id is not None:
                for event in self.replay(user_id, after=last_event_id):
                    seen = event.id
                    yield event
            while True:
                live = await queue.get()
                # Events dropped from a full queue are still in the buffer.
                pending = {event.id: event for event in self.replay(user_id, after=seen)}
                if live.id > seen:
                    pending.setdefault(live.id, live)
                for event_id in sorted(pending):
                    seen = event_id
                    yield pending[event_id]
        finally:
            self._unsubscribe(user_id, queue)


broker = ChatBroker(buffer_size=settings.chat_event_buffer_size)


def get_broker() -> ChatBroker:
    """FastAPI dependency returning the process-wide broker."""
    return broker
