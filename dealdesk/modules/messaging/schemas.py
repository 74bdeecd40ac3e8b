"""Messaging Pydantic schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from dealdesk.models.enums import MessageType


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class MessageResponse(BaseModel):
    id: uuid.UUID
    connection_id: uuid.UUID
    seq: int
    sender_id: uuid.UUID
    type: MessageType
    content: str
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageListResponse(BaseModel):
    items: list[MessageResponse]
    unread: int
