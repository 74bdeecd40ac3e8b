"""Ledger Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from dealdesk.models.enums import ConnectionStatus, DealStatus


class RecordProfitRequest(BaseModel):
    amount: Decimal = Field(..., description="Profit paid out, in major units")
    description: str | None = Field(None, max_length=500)


class LedgerEntryResponse(BaseModel):
    id: uuid.UUID
    connection_id: uuid.UUID | None
    idea_id: uuid.UUID
    founder_id: uuid.UUID
    investor_id: uuid.UUID
    amount: Decimal
    transaction_id: uuid.UUID | None
    proof_url: str | None
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class DealSummaryResponse(BaseModel):
    connection_id: uuid.UUID
    role: str
    status: ConnectionStatus
    deal_status: DealStatus
    proposed_amount: Decimal | None
    total_invested: Decimal
    total_invested_verified: Decimal
    total_invested_unverified: Decimal
    total_profit: Decimal
    total_profit_verified: Decimal
    total_profit_unverified: Decimal
    roi_percent: Decimal
    pending_settlements: int
