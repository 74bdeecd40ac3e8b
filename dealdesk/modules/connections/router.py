"""Connections API router: request, answer and list founder/investor connections."""

import uuid

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.auth.dependencies import get_current_user, require_user_type
from dealdesk.core.database import get_db
from dealdesk.models.enums import UserType
from dealdesk.modules.connections import service
from dealdesk.modules.connections.roles import resolve_role
from dealdesk.modules.connections.schemas import (
    ConnectionCreateRequest,
    ConnectionListResponse,
    ConnectionRespondRequest,
    ConnectionResponse,
)
from dealdesk.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/connections", tags=["connections"])


@router.post(
    "",
    response_model=ConnectionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_connection(
    body: ConnectionCreateRequest,
    current_user: CurrentUser = Depends(require_user_type(UserType.INVESTOR)),
    db: AsyncSession = Depends(get_db),
):
    """Ask an idea's founder to connect."""
    connection = await service.request_connection(db, current_user.user_id, body.idea_id)
    return ConnectionResponse.model_validate(connection)


@router.get(
    "",
    response_model=ConnectionListResponse,
)
async def list_connections(
    active_only: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Connections the current user is party to."""
    connections = await service.list_connections(db, current_user.user_id, active_only=active_only)
    return ConnectionListResponse(
        items=[ConnectionResponse.model_validate(c) for c in connections],
        total=len(connections),
    )


@router.get(
    "/{connection_id}",
    response_model=ConnectionResponse,
)
async def get_connection(
    connection_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await service.get_connection(db, connection_id)
    resolve_role(connection, current_user.user_id)
    return ConnectionResponse.model_validate(connection)


@router.put(
    "/{connection_id}/respond",
    response_model=ConnectionResponse,
)
async def respond_to_request(
    connection_id: uuid.UUID,
    body: ConnectionRespondRequest,
    current_user: CurrentUser = Depends(require_user_type(UserType.FOUNDER)),
    db: AsyncSession = Depends(get_db),
):
    """Founder accepts or declines a pending request."""
    connection = await service.respond_to_request(db, connection_id, current_user.user_id, body.accept)
    return ConnectionResponse.model_validate(connection)
