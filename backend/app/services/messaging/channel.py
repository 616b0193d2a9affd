"""Chat operations: persist the change, then publish it to both participants."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlmodel import and_, col, or_, select

from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.messages import Message
from app.models.users import User
from app.schemas.messages import MessageRead, TypingAck
from app.services.errors import ForbiddenError, NotFoundError, ValidationError
from app.services.messaging.broker import (
    MESSAGE_DELETED,
    MESSAGE_RECEIVED,
    MESSAGE_UPDATED,
    TYPING_STATUS,
)

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

    from app.services.messaging.broker import ChatBroker

logger = get_logger(__name__)


def _message_payload(message: Message) -> dict[str, Any]:
    return MessageRead.model_validate(message.model_dump()).model_dump(mode="json")


def _content(value: str) -> str:
    content = value.strip()
    if not content:
        raise ValidationError("Message content cannot be empty")
    return content


async def _require_user(session: AsyncSession, user_id: UUID) -> User:
    user = await User.objects.by_id(user_id).first(session)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _require_message(session: AsyncSession, message_id: UUID) -> Message:
    message = await Message.objects.by_id(message_id).first(session)
    if message is None:
        raise NotFoundError("Message not found")
    return message


def _publish(broker: ChatBroker, event: str, message: Message, data: dict[str, Any]) -> None:
    broker.publish(event, data, user_ids=(message.sender_id, message.receiver_id))


async def send_message(
    session: AsyncSession,
    broker: ChatBroker,
    *,
    sender_id: UUID,
    receiver_id: UUID,
    content: str,
) -> Message:
    await _require_user(session, receiver_id)
    message = Message(sender_id=sender_id, receiver_id=receiver_id, content=_content(content))
    session.add(message)
    await session.commit()
    await session.refresh(message)
    _publish(broker, MESSAGE_RECEIVED, message, _message_payload(message))
    logger.info(
        "chat.message.sent",
        extra={"message_id": str(message.id), "receiver_id": str(receiver_id)},
    )
    return message


async def edit_message(
    session: AsyncSession,
    broker: ChatBroker,
    *,
    actor_id: UUID,
    message_id: UUID,
    content: str,
) -> Message:
    """Replace a message's content. Only the sender may edit."""
    message = await _require_message(session, message_id)
    if message.sender_id != actor_id:
        raise ForbiddenError("Only the sender can edit this message")
    message.content = _content(content)
    message.edited = True
    message.updated_at = utcnow()
    session.add(message)
    await session.commit()
    await session.refresh(message)
    _publish(broker, MESSAGE_UPDATED, message, _message_payload(message))
    return message


async def delete_message(
    session: AsyncSession,
    broker: ChatBroker,
    *,
    actor_id: UUID,
    message_id: UUID,
) -> UUID:
    """Delete a message. Only the sender may delete."""
    message = await _require_message(session, message_id)
    if message.sender_id != actor_id:
        raise ForbiddenError("Only the sender can delete this message")
    deleted_id = message.id
    payload = {
        "message_id": str(deleted_id),
        "sender_id": str(message.sender_id),
        "receiver_id": str(message.receiver_id),
    }
    recipients = (message.sender_id, message.receiver_id)
    await session.delete(message)
    await session.commit()
    broker.publish(MESSAGE_DELETED, payload, user_ids=recipients)
    logger.info("chat.message.deleted", extra={"message_id": str(deleted_id)})
    return deleted_id


async def mark_read(
    session: AsyncSession,
    broker: ChatBroker,
    *,
    actor_id: UUID,
    message_id: UUID,
) -> Message:
    """Mark a message read. Only the receiver may; repeat calls are no-ops."""
    message = await _require_message(session, message_id)
    if message.receiver_id != actor_id:
        raise ForbiddenError("Only the receiver can mark this message as read")
    if message.read:
        return message
    now = utcnow()
    message.read = True
    message.read_at = now
    message.updated_at = now
    session.add(message)
    await session.commit()
    await session.refresh(message)
    _publish(broker, MESSAGE_UPDATED, message, _message_payload(message))
    return message


async def set_typing(
    session: AsyncSession,
    broker: ChatBroker,
    *,
    actor_id: UUID,
    receiver_id: UUID,
    is_typing: bool,
) -> TypingAck:
    """Relay a typing indicator to the receiver. Nothing is stored."""
    await _require_user(session, receiver_id)
    broker.publish(
        TYPING_STATUS,
        {"sender_id": str(actor_id), "receiver_id": str(receiver_id), "is_typing": is_typing},
        user_ids=(receiver_id,),
    )
    return TypingAck(receiver_id=receiver_id, is_typing=is_typing)


def conversation_statement(user_id: UUID, other_user_id: UUID) -> SelectOfScalar[Message]:
    """Messages exchanged between two users, oldest first."""
    return (
        select(Message)
        .where(
            or_(
                and_(col(Message.sender_id) == user_id, col(Message.receiver_id) == other_user_id),
                and_(col(Message.sender_id) == other_user_id, col(Message.receiver_id) == user_id),
            ),
        )
        .order_by(col(Message.created_at).asc(), col(Message.id).asc())
    )


async def load_messages(
    session: AsyncSession,
    *,
    user_id: UUID,
    other_user_id: UUID,
) -> SelectOfScalar[Message]:
    """Check the other participant exists and return the history query."""
    await _require_user(session, other_user_id)
    return conversation_statement(user_id, other_user_id)
