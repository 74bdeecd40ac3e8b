"""Settlement API router: payment intents, payer claims and payee confirmation."""

import uuid
from decimal import Decimal

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.auth.dependencies import get_current_user
from dealdesk.core.database import get_db
from dealdesk.models.enums import SettlementKind, TransactionStatus
from dealdesk.modules.ledger import service as ledger
from dealdesk.modules.settlement import service
from dealdesk.modules.settlement.schemas import (
    PaymentIntentRequest,
    PaymentIntentResponse,
    TransactionResponse,
)
from dealdesk.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/deals", tags=["settlement"])


# ── Fixed-path routes (before /{connection_id}) ──────────────────────────────


@router.post(
    "/settlements/{kind}/{transaction_id}/confirm",
    response_model=TransactionResponse,
)
async def confirm_receipt(
    kind: SettlementKind,
    transaction_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Payee confirms the money arrived; records it in the ledger."""
    transaction = await service.confirm_receipt(db, transaction_id, current_user.user_id, kind)
    return TransactionResponse.model_validate(transaction)


# ── Parameterized routes ─────────────────────────────────────────────────────


@router.post(
    "/{connection_id}/settlements/{kind}/intent",
    response_model=PaymentIntentResponse,
)
async def initiate(
    connection_id: uuid.UUID,
    kind: SettlementKind,
    body: PaymentIntentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Build the UPI link for the payer to scan. Nothing is stored."""
    intent = await service.initiate(db, connection_id, current_user.user_id, body.amount, kind)
    return PaymentIntentResponse.model_validate(intent)


@router.post(
    "/{connection_id}/settlements/{kind}",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_initiator_confirmation(
    connection_id: uuid.UUID,
    kind: SettlementKind,
    amount: Decimal = Form(...),
    description: str | None = Form(None),
    proof: UploadFile | None = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Payer declares the payment sent, optionally with a screenshot."""
    proof_bytes = await proof.read() if proof is not None else None
    transaction = await service.record_initiator_confirmation(
        db,
        connection_id,
        current_user.user_id,
        amount,
        proof=proof_bytes,
        proof_content_type=proof.content_type if proof is not None else None,
        description=description,
        kind=kind,
    )
    return TransactionResponse.model_validate(transaction)


@router.get(
    "/{connection_id}/settlements/{kind}",
    response_model=list[TransactionResponse],
)
async def list_transactions(
    connection_id: uuid.UUID,
    kind: SettlementKind,
    status: TransactionStatus | None = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    transactions = await ledger.list_transactions(db, connection_id, current_user.user_id, kind, status)
    return [TransactionResponse.model_validate(t) for t in transactions]
