"""Settlement Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from dealdesk.models.enums import SettlementKind, TransactionStatus


class PaymentIntentRequest(BaseModel):
    amount: Decimal


class PaymentIntentResponse(BaseModel):
    kind: SettlementKind
    connection_id: uuid.UUID
    amount: Decimal
    payee_id: uuid.UUID
    payee_name: str
    payee_handle: str
    note: str
    upi_uri: str

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    id: uuid.UUID
    connection_id: uuid.UUID
    idea_id: uuid.UUID
    payer_id: uuid.UUID
    payee_id: uuid.UUID
    amount: Decimal
    payee_handle: str
    description: str | None
    proof_url: str | None
    status: TransactionStatus
    initiator_confirmed_at: datetime
    payee_confirmed_at: datetime | None
    completed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
