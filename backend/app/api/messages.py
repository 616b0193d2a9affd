"""Direct message endpoints and the per-user chat event stream."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Header, Request
from sse_starlette.sse import EventSourceResponse

from app.api.deps import AUTH_DEP, BROKER_DEP, SESSION_DEP
from app.core.config import settings
from app.db.pagination import paginate
from app.schemas.messages import (
    MessageCreate,
    MessageDeleteAck,
    MessageRead,
    MessageUpdate,
    TypingAck,
    TypingUpdate,
)
from app.schemas.pagination import DefaultLimitOffsetPage
from app.services.messaging import channel

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.core.auth import AuthContext
    from app.models.messages import Message
    from app.services.messaging.broker import ChatBroker

router = APIRouter(prefix="/messages", tags=["messages"])


def _read(message: Message) -> MessageRead:
    return MessageRead.model_validate(message, from_attributes=True)


def _to_reads(messages: Sequence[Message]) -> list[MessageRead]:
    return [_read(message) for message in messages]


def _parse_last_event_id(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        return max(0, int(value.strip()))
    except ValueError:
        return None


@router.post("", response_model=MessageRead, status_code=201)
async def send_message(
    payload: MessageCreate,
    session: AsyncSession = SESSION_DEP,
    broker: ChatBroker = BROKER_DEP,
    auth: AuthContext = AUTH_DEP,
) -> MessageRead:
    message = await channel.send_message(
        session,
        broker,
        sender_id=auth.user.id,
        receiver_id=payload.receiver_id,
        content=payload.content,
    )
    return _read(message)


@router.get("/stream")
async def stream_messages(
    request: Request,
    auth: AuthContext = AUTH_DEP,
    broker: ChatBroker = BROKER_DEP,
    last_event_id: str | None = Header(default=None, alias="Last-Event-ID"),
) -> EventSourceResponse:
    """Stream chat events for the caller, replaying any after `Last-Event-ID`."""
    user_id = auth.user.id
    resume_from = _parse_last_event_id(last_event_id)

    async def event_generator() -> AsyncIterator[dict[str, str]]:
        async for event in broker.stream(user_id, last_event_id=resume_from):
            if await request.is_disconnected():
                break
            yield event.to_sse()

    return EventSourceResponse(event_generator(), ping=settings.chat_stream_ping_seconds)


@router.post("/typing", response_model=TypingAck)
async def typing_status(
    payload: TypingUpdate,
    session: AsyncSession = SESSION_DEP,
    broker: ChatBroker = BROKER_DEP,
    auth: AuthContext = AUTH_DEP,
) -> TypingAck:
    return await channel.set_typing(
        session,
        broker,
        actor_id=auth.user.id,
        receiver_id=payload.receiver_id,
        is_typing=payload.is_typing,
    )


@router.get("/conversation/{other_user_id}", response_model=DefaultLimitOffsetPage[MessageRead])
async def load_messages(
    other_user_id: UUID,
    session: AsyncSession = SESSION_DEP,
    auth: AuthContext = AUTH_DEP,
) -> DefaultLimitOffsetPage[MessageRead]:
    """Page through the conversation with another user, oldest first."""
    statement = await channel.load_messages(
        session,
        user_id=auth.user.id,
        other_user_id=other_user_id,
    )
    return await paginate(session, statement, transformer=_to_reads)


@router.patch("/{message_id}", response_model=MessageRead)
async def edit_message(
    message_id: UUID,
    payload: MessageUpdate,
    session: AsyncSession = SESSION_DEP,
    broker: ChatBroker = BROKER_DEP,
    auth: AuthContext = AUTH_DEP,
) -> MessageRead:
    message = await channel.edit_message(
        session,
        broker,
        actor_id=auth.user.id,
        message_id=message_id,
        content=payload.content,
    )
    return _read(message)


@router.delete("/{message_id}", response_model=MessageDeleteAck)
async def delete_message(
    message_id: UUID,
    session: AsyncSession = SESSION_DEP,
    broker: ChatBroker = BROKER_DEP,
    auth: AuthContext = AUTH_DEP,
) -> MessageDeleteAck:
    deleted_id = await channel.delete_message(
        session,
        broker,
        actor_id=auth.user.id,
        message_id=message_id,
    )
    return MessageDeleteAck(message_id=deleted_id)


@router.post("/{message_id}/read", response_model=MessageRead)
async def mark_as_read(
    message_id: UUID,
    session: AsyncSession = SESSION_DEP,
    broker: ChatBroker = BROKER_DEP,
    auth: AuthContext = AUTH_DEP,
) -> MessageRead:
    message = await channel.mark_read(
        session,
        broker,
        actor_id=auth.user.id,
        message_id=message_id,
    )
    return _read(message)
