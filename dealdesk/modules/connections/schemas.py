"""Connection Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from dealdesk.models.enums import ConnectionStatus, DealStatus


class ConnectionCreateRequest(BaseModel):
    idea_id: uuid.UUID


class ConnectionRespondRequest(BaseModel):
    accept: bool


class ConnectionResponse(BaseModel):
    id: uuid.UUID
    idea_id: uuid.UUID
    founder_id: uuid.UUID
    investor_id: uuid.UUID
    status: ConnectionStatus
    deal_status: DealStatus
    proposed_amount: Decimal | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ConnectionListResponse(BaseModel):
    items: list[ConnectionResponse]
    total: int
