"""Negotiation API router: proposals and reinvestment requests on a deal."""

import uuid

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.auth.dependencies import get_current_user
from dealdesk.core.database import get_db
from dealdesk.modules.connections.schemas import ConnectionResponse
from dealdesk.modules.negotiation import service
from dealdesk.modules.negotiation.schemas import OfferRequest
from dealdesk.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/deals", tags=["negotiation"])


# ── Investor proposal ────────────────────────────────────────────────────────


@router.post("/{connection_id}/proposal", response_model=ConnectionResponse)
async def propose(
    connection_id: uuid.UUID,
    body: OfferRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Investor proposes an investment amount."""
    connection = await service.propose(db, connection_id, current_user.user_id, body.amount)
    return ConnectionResponse.model_validate(connection)


@router.post("/{connection_id}/proposal/accept", response_model=ConnectionResponse)
async def accept_proposal(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await service.accept_proposal(db, connection_id, current_user.user_id)
    return ConnectionResponse.model_validate(connection)


@router.post("/{connection_id}/proposal/reject", response_model=ConnectionResponse)
async def reject_proposal(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await service.reject_proposal(db, connection_id, current_user.user_id)
    return ConnectionResponse.model_validate(connection)


# ── Founder reinvestment request ─────────────────────────────────────────────


@router.post("/{connection_id}/request", response_model=ConnectionResponse)
async def request_reinvestment(
    connection_id: uuid.UUID,
    body: OfferRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Founder asks the investor for more capital."""
    connection = await service.request_reinvestment(db, connection_id, current_user.user_id, body.amount)
    return ConnectionResponse.model_validate(connection)


@router.post("/{connection_id}/request/accept", response_model=ConnectionResponse)
async def accept_request(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await service.accept_request(db, connection_id, current_user.user_id)
    return ConnectionResponse.model_validate(connection)


@router.post("/{connection_id}/request/reject", response_model=ConnectionResponse)
async def reject_request(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await service.reject_request(db, connection_id, current_user.user_id)
    return ConnectionResponse.model_validate(connection)
