"""Notification service: best-effort fanout, list, mark-read, realtime push."""

import uuid

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.models.core import Notification
from dealdesk.models.enums import NotificationType
from dealdesk.modules.messaging.broker import broker, user_topic

logger = structlog.get_logger()


async def create_notification(
    db: AsyncSession,
    user_id: uuid.UUID,
    type: NotificationType,
    title: str,
    message: str,
    link: str | None = None,
) -> Notification:
    """Insert a notification row. The caller owns the transaction."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        link=link,
    )
    db.add(notification)
    await db.flush()
    return notification


async def notify(
    db: AsyncSession,
    user_id: uuid.UUID,
    title: str,
    body: str,
    redirect: str | None = None,
    type: NotificationType = NotificationType.INFO,
) -> Notification | None:
    """Alert a user without ever failing the operation that triggered it.

    Runs in its own session on the same engine, after the parent operation
    has committed, so a failure here cannot roll anything back. Returns None
    when the notification could not be stored.
    """
    try:
        async with AsyncSession(db.bind, expire_on_commit=False) as session:
            notification = await create_notification(session, user_id, type, title, body, redirect)
            await session.commit()
    except Exception as exc:  # noqa: BLE001
        logger.warning("notification_failed", user_id=str(user_id), title=title, error=str(exc))
        return None

    await broker.publish(user_topic(user_id), {
        "type": "notification",
        "data": {
            "id": str(notification.id),
            "type": type.value,
            "title": title,
            "message": body,
            "link": redirect,
        },
    })
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    is_read: bool | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Notification], int]:
    """List notifications for a user, newest first."""
    base = select(Notification).where(Notification.user_id == user_id)
    if is_read is not None:
        base = base.where(Notification.is_read == is_read)

    count_stmt = select(func.count()).select_from(base.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = base.order_by(Notification.created_at.desc())
    stmt = stmt.offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def mark_read(
    db: AsyncSession,
    notification_id: uuid.UUID,
    user_id: uuid.UUID,
) -> bool:
    """Mark a single notification as read."""
    notification = await db.get(Notification, notification_id)
    if not notification or notification.user_id != user_id:
        return False
    notification.is_read = True
    await db.flush()
    return True


async def mark_all_read(
    db: AsyncSession,
    user_id: uuid.UUID,
) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    stmt = (
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    )
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount


async def get_unread_count(
    db: AsyncSession,
    user_id: uuid.UUID,
) -> int:
    stmt = select(func.count()).where(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    )
    result = await db.execute(stmt)
    return result.scalar() or 0
