"""Notifications API router: list, read, stream (SSE)."""

import asyncio
import json
import math
import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.auth.dependencies import get_current_user
from dealdesk.core.database import get_db
from dealdesk.modules.messaging.broker import broker, user_topic
from dealdesk.modules.notifications import service
from dealdesk.modules.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from dealdesk.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _notification_to_response(n) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        type=n.type,
        title=n.title,
        message=n.message,
        link=n.link,
        is_read=n.is_read,
        created_at=n.created_at,
    )


# ── Fixed-path routes (before /{id}) ─────────────────────────────────────────


@router.get(
    "",
    response_model=NotificationListResponse,
)
async def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    is_read: bool | None = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List notifications for the current user."""
    notifications, total = await service.list_notifications(
        db, current_user.user_id, is_read=is_read, page=page, page_size=page_size,
    )
    return NotificationListResponse(
        items=[_notification_to_response(n) for n in notifications],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=max(1, math.ceil(total / page_size)),
    )


@router.put(
    "/read-all",
    response_model=dict,
)
async def mark_all_read(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark all notifications as read."""
    count = await service.mark_all_read(db, current_user.user_id)
    await db.commit()
    return {"marked_read": count}


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
)
async def get_unread_count(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await service.get_unread_count(db, current_user.user_id)
    return UnreadCountResponse(count=count)


@router.get(
    "/stream",
)
async def notification_stream(
    current_user: CurrentUser = Depends(get_current_user),
):
    """SSE stream for real-time notifications."""
    topic = user_topic(current_user.user_id)

    async def event_generator():
        queue = broker.subscribe(topic)
        try:
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=30.0)
                    yield f"data: {json.dumps(event, default=str)}\n\n"
                except asyncio.TimeoutError:
                    yield f"data: {json.dumps({'type': 'heartbeat'})}\n\n"
        except asyncio.CancelledError:
            pass
        finally:
            broker.unsubscribe(topic, queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# ── Parameterized routes (after fixed paths) ─────────────────────────────────


@router.put(
    "/{notification_id}/read",
    response_model=dict,
)
async def mark_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a single notification as read."""
    success = await service.mark_read(db, notification_id, current_user.user_id)
    if not success:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    await db.commit()
    return {"success": True}
