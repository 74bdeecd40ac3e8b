"""Ledger API router: deal summary, investment and profit history."""

import uuid

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.auth.dependencies import get_current_user
from dealdesk.core.database import get_db
from dealdesk.modules.ledger import service
from dealdesk.modules.ledger.schemas import (
    DealSummaryResponse,
    LedgerEntryResponse,
    RecordProfitRequest,
)
from dealdesk.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/deals", tags=["ledger"])


@router.get("/{connection_id}/summary", response_model=DealSummaryResponse)
async def get_deal_summary(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Totals, ROI and pending settlements for one deal."""
    return await service.get_deal_summary(db, connection_id, current_user.user_id)


@router.get("/{connection_id}/investments", response_model=list[LedgerEntryResponse])
async def list_investments(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await service.list_investments(db, connection_id, current_user.user_id)
    return [LedgerEntryResponse.model_validate(r) for r in records]


@router.get("/{connection_id}/profits", response_model=list[LedgerEntryResponse])
async def list_profit_shares(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    shares = await service.list_profit_shares(db, connection_id, current_user.user_id)
    return [LedgerEntryResponse.model_validate(s) for s in shares]


@router.post(
    "/{connection_id}/profits",
    response_model=LedgerEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_profit_share(
    connection_id: uuid.UUID,
    body: RecordProfitRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Founder records a profit payout made outside the settlement flow."""
    share = await service.record_profit_share(
        db, connection_id, current_user.user_id, body.amount, body.description
    )
    return LedgerEntryResponse.model_validate(share)
