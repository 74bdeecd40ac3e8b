"""Connection registry: which founder/investor pairs may negotiate."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.core.errors import InvalidState, NotAuthorized, NotFound, StateConflict
from dealdesk.models.connections import Connection
from dealdesk.models.core import Idea, User
from dealdesk.models.enums import (
    ACTIVE_CONNECTION_STATUSES,
    ConnectionStatus,
    NotificationType,
    UserType,
)
from dealdesk.modules.connections.roles import Role, require_role
from dealdesk.modules.notifications.service import notify

logger = structlog.get_logger()


def deal_link(connection_id: uuid.UUID) -> str:
    return f"/deal-center/{connection_id}"


async def get_connection(db: AsyncSession, connection_id: uuid.UUID) -> Connection:
    result = await db.execute(
        select(Connection)
        .where(Connection.id == connection_id, Connection.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    connection = result.scalar_one_or_none()
    if connection is None:
        raise NotFound("Deal not found", connection_id=str(connection_id))
    return connection


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None or user.is_deleted:
        raise NotFound("User not found", user_id=str(user_id))
    return user


def ensure_active(connection: Connection) -> None:
    """Negotiation, chat and settlement need a connection the founder accepted."""
    if connection.status not in ACTIVE_CONNECTION_STATUSES:
        raise InvalidState(
            f"Connection is {connection.status.value}",
            connection_id=str(connection.id),
            status=connection.status.value,
        )


async def request_connection(
    db: AsyncSession, investor_id: uuid.UUID, idea_id: uuid.UUID
) -> Connection:
    """Investor asks the idea's founder to connect; starts as pending."""
    investor = await get_user(db, investor_id)
    if investor.user_type != UserType.INVESTOR:
        raise NotAuthorized("Only investors can request a connection")

    idea = await db.get(Idea, idea_id)
    if idea is None or idea.is_deleted:
        raise NotFound("Idea not found", idea_id=str(idea_id))

    connection = Connection(
        idea_id=idea.id,
        founder_id=idea.founder_id,
        investor_id=investor.id,
        status=ConnectionStatus.PENDING,
    )
    db.add(connection)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise StateConflict(
            "A connection request for this idea already exists",
            idea_id=str(idea_id),
        ) from exc
    await db.commit()

    logger.info("connection_requested", connection_id=str(connection.id), idea_id=str(idea_id))
    await notify(
        db,
        idea.founder_id,
        "New connection request",
        f"{investor.name} wants to connect about {idea.title}",
        deal_link(connection.id),
        NotificationType.ACTION_REQUIRED,
    )
    return connection


async def respond_to_request(
    db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID, accept: bool
) -> Connection:
    """Founder accepts (pending → communicating) or declines (pending → rejected)."""
    connection = await get_connection(db, connection_id)
    require_role(connection, actor_id, Role.FOUNDER)

    new_status = ConnectionStatus.COMMUNICATING if accept else ConnectionStatus.REJECTED
    result = await db.execute(
        update(Connection)
        .where(Connection.id == connection_id, Connection.status == ConnectionStatus.PENDING)
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise InvalidState(
            "Connection request has already been answered",
            connection_id=str(connection_id),
        )
    await db.commit()
    connection = await get_connection(db, connection_id)

    logger.info("connection_answered", connection_id=str(connection_id), status=new_status.value)
    await notify(
        db,
        connection.investor_id,
        "Connection accepted" if accept else "Connection declined",
        "The founder accepted your request. You can now chat and negotiate."
        if accept
        else "The founder declined your connection request.",
        deal_link(connection_id),
    )
    return connection


async def list_connections(
    db: AsyncSession, user_id: uuid.UUID, active_only: bool = False
) -> list[Connection]:
    """Connections the user is party to, newest first."""
    stmt = select(Connection).where(
        or_(Connection.founder_id == user_id, Connection.investor_id == user_id),
        Connection.is_deleted.is_(False),
    )
    if active_only:
        stmt = stmt.where(Connection.status.in_(list(ACTIVE_CONNECTION_STATUSES)))
    result = await db.execute(stmt.order_by(Connection.created_at.desc()))
    return list(result.scalars().all())
