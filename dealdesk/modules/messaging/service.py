"""Per-connection message log: chat, attachments and negotiation notices.

Messages are appended inside the caller's transaction so a state change and
its audit notice commit together. Subscribers hear about them only after the
commit, through ``publish_messages``.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Iterable

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.core.config import settings
from dealdesk.core.errors import InvalidAttachment, InvalidState, ValidationError
from dealdesk.models.connections import Connection, Message
from dealdesk.models.enums import ConnectionStatus, MessageType
from dealdesk.modules.connections.roles import resolve_role
from dealdesk.modules.connections.service import ensure_active, get_connection
from dealdesk.modules.messaging.broker import broker, connection_topic
from dealdesk.services import storage

logger = structlog.get_logger()

ATTACHMENT_CONTENT_TYPES = frozenset({
    "application/pdf",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "image/png",
    "image/jpeg",
    "image/gif",
})


async def _next_seq(db: AsyncSession, connection_id: uuid.UUID) -> int:
    result = await db.execute(
        update(Connection)
        .where(Connection.id == connection_id)
        .values(message_seq=Connection.message_seq + 1)
        .returning(Connection.message_seq)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one()


async def append_message(
    db: AsyncSession,
    connection_id: uuid.UUID,
    sender_id: uuid.UUID,
    content: str,
    type: MessageType = MessageType.TEXT,
) -> Message:
    """Add a message to the log. Does not commit or publish."""
    message = Message(
        connection_id=connection_id,
        seq=await _next_seq(db, connection_id),
        sender_id=sender_id,
        type=type,
        content=content,
    )
    db.add(message)
    await db.flush()
    return message


def message_payload(message: Message) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "connection_id": str(message.connection_id),
        "seq": message.seq,
        "sender_id": str(message.sender_id),
        "type": message.type.value,
        "content": message.content,
        "is_read": message.is_read,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


async def publish_messages(messages: Iterable[Message]) -> None:
    for message in messages:
        await broker.publish(
            connection_topic(message.connection_id),
            {"type": "message", "data": message_payload(message)},
        )


def attachment_content(file_url: str, file_name: str, file_type: str) -> str:
    return json.dumps(
        {"type": "attachment", "fileUrl": file_url, "fileName": file_name, "fileType": file_type},
        separators=(",", ":"),
    )


def parse_attachment(content: str) -> dict[str, str] | None:
    """Decode an attachment payload; plain text yields None."""
    if not content.startswith('{"type":"attachment"'):
        return None
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


async def send_text(
    db: AsyncSession, connection_id: uuid.UUID, sender_id: uuid.UUID, content: str
) -> Message:
    connection = await get_connection(db, connection_id)
    resolve_role(connection, sender_id)
    ensure_active(connection)
    if not content.strip():
        raise ValidationError("Message cannot be empty")

    message = await append_message(db, connection_id, sender_id, content)
    await db.commit()
    await publish_messages([message])
    return message


async def share_attachment(
    db: AsyncSession,
    connection_id: uuid.UUID,
    sender_id: uuid.UUID,
    filename: str,
    content_type: str,
    data: bytes,
) -> Message:
    """Upload a document into the chat; only once a deal is established."""
    connection = await get_connection(db, connection_id)
    resolve_role(connection, sender_id)
    if connection.status != ConnectionStatus.DEAL_DONE:
        raise InvalidState(
            "Document sharing is only available after a deal is established",
            connection_id=str(connection_id),
        )
    if len(data) > settings.MAX_ATTACHMENT_BYTES:
        raise InvalidAttachment(
            "File too large",
            max_bytes=settings.MAX_ATTACHMENT_BYTES,
        )
    if content_type not in ATTACHMENT_CONTENT_TYPES:
        raise InvalidAttachment("Unsupported file type", content_type=content_type)

    key = storage.build_key("chat-attachments", connection_id, content_type, filename)
    url = await storage.put(data, key, content_type)

    message = await append_message(
        db,
        connection_id,
        sender_id,
        attachment_content(url, filename, content_type),
        MessageType.ATTACHMENT,
    )
    await db.commit()
    await publish_messages([message])
    logger.info("attachment_shared", connection_id=str(connection_id), key=key)
    return message


async def list_messages(
    db: AsyncSession,
    connection_id: uuid.UUID,
    actor_id: uuid.UUID,
    after_seq: int | None = None,
    limit: int = 200,
) -> list[Message]:
    """Messages in log order; ``after_seq`` lets a client catch up after a gap."""
    connection = await get_connection(db, connection_id)
    resolve_role(connection, actor_id)

    stmt = select(Message).where(Message.connection_id == connection_id)
    if after_seq is not None:
        stmt = stmt.where(Message.seq > after_seq)
    result = await db.execute(stmt.order_by(Message.seq).limit(limit))
    return list(result.scalars().all())


async def mark_read(
    db: AsyncSession, connection_id: uuid.UUID, message_id: uuid.UUID, reader_id: uuid.UUID
) -> bool:
    """Mark one message read. A sender cannot mark their own message."""
    connection = await get_connection(db, connection_id)
    resolve_role(connection, reader_id)

    result = await db.execute(
        update(Message)
        .where(
            Message.id == message_id,
            Message.connection_id == connection_id,
            Message.sender_id != reader_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def mark_all_read(db: AsyncSession, connection_id: uuid.UUID, reader_id: uuid.UUID) -> int:
    connection = await get_connection(db, connection_id)
    resolve_role(connection, reader_id)

    result = await db.execute(
        update(Message)
        .where(
            Message.connection_id == connection_id,
            Message.sender_id != reader_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def unread_count(db: AsyncSession, connection_id: uuid.UUID, user_id: uuid.UUID) -> int:
    """Messages from the other party the user has not read yet."""
    result = await db.execute(
        select(func.count()).where(
            Message.connection_id == connection_id,
            Message.sender_id != user_id,
            Message.is_read.is_(False),
        )
    )
    return result.scalar() or 0
