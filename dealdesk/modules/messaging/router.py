"""Messaging API router: deal chat, attachments and the live event stream (SSE)."""

import asyncio
import json
import uuid

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.auth.dependencies import get_current_user
from dealdesk.core.database import get_db
from dealdesk.modules.connections.roles import resolve_role
from dealdesk.modules.connections.service import get_connection
from dealdesk.modules.messaging import service
from dealdesk.modules.messaging.broker import broker, connection_topic
from dealdesk.modules.messaging.schemas import (
    MessageListResponse,
    MessageResponse,
    SendMessageRequest,
)
from dealdesk.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/deals", tags=["messaging"])


@router.get("/{connection_id}/messages", response_model=MessageListResponse)
async def list_messages(
    connection_id: uuid.UUID,
    after_seq: int | None = Query(None, ge=0),
    limit: int = Query(200, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Chat history in order; pass after_seq to fetch only what was missed."""
    messages = await service.list_messages(db, connection_id, current_user.user_id, after_seq, limit)
    unread = await service.unread_count(db, connection_id, current_user.user_id)
    return MessageListResponse(
        items=[MessageResponse.model_validate(m) for m in messages],
        unread=unread,
    )


@router.post(
    "/{connection_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_text(
    connection_id: uuid.UUID,
    body: SendMessageRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await service.send_text(db, connection_id, current_user.user_id, body.content)
    return MessageResponse.model_validate(message)


@router.post(
    "/{connection_id}/attachments",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def share_attachment(
    connection_id: uuid.UUID,
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Share a document in the deal chat once the deal is done."""
    data = await file.read()
    message = await service.share_attachment(
        db,
        connection_id,
        current_user.user_id,
        file.filename or "attachment",
        file.content_type or "application/octet-stream",
        data,
    )
    return MessageResponse.model_validate(message)


@router.put("/{connection_id}/messages/read-all", response_model=dict)
async def mark_all_read(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await service.mark_all_read(db, connection_id, current_user.user_id)
    return {"marked_read": count}


@router.put("/{connection_id}/messages/{message_id}/read", response_model=dict)
async def mark_read(
    connection_id: uuid.UUID,
    message_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    success = await service.mark_read(db, connection_id, message_id, current_user.user_id)
    if not success:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return {"success": True}


@router.get("/{connection_id}/stream")
async def deal_stream(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """SSE stream of new messages on a deal."""
    connection = await get_connection(db, connection_id)
    resolve_role(connection, current_user.user_id)
    topic = connection_topic(connection_id)

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
