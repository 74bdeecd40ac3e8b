"""Negotiation state machine layered on a connection.

``deal_status`` moves none/rejected → proposed|requested → none|rejected. Every
transition is a conditional UPDATE on the expected prior ``deal_status`` so a
stale or concurrent caller loses with a StateConflict instead of overwriting
an offer or crediting it twice. The audit message for each transition is
appended in the same transaction.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.core.errors import AlreadyProposed, InvalidState
from dealdesk.models.connections import Connection
from dealdesk.models.enums import (
    ACTIVE_CONNECTION_STATUSES,
    OPEN_DEAL_STATUSES,
    ConnectionStatus,
    DealStatus,
    NotificationType,
)
from dealdesk.modules.connections.roles import Role, require_role, user_for
from dealdesk.modules.connections.service import deal_link, ensure_active, get_connection
from dealdesk.modules.ledger import service as ledger
from dealdesk.modules.ledger.formatting import format_amount
from dealdesk.modules.messaging.service import append_message, publish_messages
from dealdesk.modules.notifications.service import notify

logger = structlog.get_logger()


async def _conditional_update(
    db: AsyncSession, connection_id: uuid.UUID, *criteria, **values
) -> bool:
    result = await db.execute(
        update(Connection)
        .where(Connection.id == connection_id, *criteria)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _open_offer(
    db: AsyncSession,
    connection_id: uuid.UUID,
    actor_id: uuid.UUID,
    amount: Decimal,
    role: Role,
    deal_status: DealStatus,
    text: str,
    **extra,
) -> Connection:
    connection = await get_connection(db, connection_id)
    require_role(connection, actor_id, role)
    ensure_active(connection)
    amount = ledger.validate_amount(amount)

    opened = await _conditional_update(
        db,
        connection_id,
        Connection.deal_status.not_in(list(OPEN_DEAL_STATUSES)),
        Connection.status.in_(list(ACTIVE_CONNECTION_STATUSES)),
        deal_status=deal_status,
        proposed_amount=amount,
        **extra,
    )
    if not opened:
        await db.rollback()
        raise AlreadyProposed(
            "An offer is already awaiting a response",
            connection_id=str(connection_id),
        )

    message = await append_message(db, connection_id, actor_id, text.format(amount=format_amount(amount)))
    await db.commit()
    connection = await get_connection(db, connection_id)
    await publish_messages([message])

    logger.info(
        "offer_opened",
        connection_id=str(connection_id),
        deal_status=deal_status.value,
        amount=str(amount),
    )
    await notify(
        db,
        user_for(connection, role.counterpart),
        "New investment proposal" if role is Role.INVESTOR else "Reinvestment requested",
        text.format(amount=format_amount(amount)),
        deal_link(connection_id),
        NotificationType.ACTION_REQUIRED,
    )
    return connection


async def _accept_offer(
    db: AsyncSession,
    connection_id: uuid.UUID,
    actor_id: uuid.UUID,
    role: Role,
    expected: DealStatus,
    text: str,
) -> Connection:
    connection = await get_connection(db, connection_id)
    require_role(connection, actor_id, role)
    if connection.deal_status != expected or connection.proposed_amount is None:
        raise InvalidState(
            f"No {expected.value} offer to accept",
            connection_id=str(connection_id),
            deal_status=connection.deal_status.value,
        )
    amount = connection.proposed_amount

    accepted = await _conditional_update(
        db,
        connection_id,
        Connection.deal_status == expected,
        Connection.proposed_amount == amount,
        deal_status=DealStatus.NONE,
        status=ConnectionStatus.DEAL_DONE,
        proposed_amount=None,
    )
    if not accepted:
        await db.rollback()
        raise InvalidState("The offer was already answered", connection_id=str(connection_id))

    await ledger.record_investment(db, connection, amount, description=f"Accepted {expected.value} offer")
    message = await append_message(db, connection_id, actor_id, text.format(amount=format_amount(amount)))
    await db.commit()
    connection = await get_connection(db, connection_id)
    await publish_messages([message])

    logger.info("offer_accepted", connection_id=str(connection_id), deal_status=expected.value, amount=str(amount))
    await notify(
        db,
        user_for(connection, role.counterpart),
        "Deal accepted",
        text.format(amount=format_amount(amount)),
        deal_link(connection_id),
        NotificationType.PAYMENT,
    )
    return connection


async def _reject_offer(
    db: AsyncSession,
    connection_id: uuid.UUID,
    actor_id: uuid.UUID,
    role: Role,
    expected: DealStatus,
    text: str,
    restore_status: bool,
) -> Connection:
    connection = await get_connection(db, connection_id)
    require_role(connection, actor_id, role)
    if connection.deal_status != expected:
        raise InvalidState(
            f"No {expected.value} offer to reject",
            connection_id=str(connection_id),
            deal_status=connection.deal_status.value,
        )
    amount = connection.proposed_amount

    values = {"deal_status": DealStatus.REJECTED, "proposed_amount": None}
    if restore_status:
        # Undo the deal_pending_investor step taken when the offer was opened
        funded = await ledger.has_investment(db, connection_id)
        values["status"] = ConnectionStatus.DEAL_DONE if funded else ConnectionStatus.COMMUNICATING

    rejected = await _conditional_update(db, connection_id, Connection.deal_status == expected, **values)
    if not rejected:
        await db.rollback()
        raise InvalidState("The offer was already answered", connection_id=str(connection_id))

    message = await append_message(db, connection_id, actor_id, text.format(amount=format_amount(amount or 0)))
    await db.commit()
    connection = await get_connection(db, connection_id)
    await publish_messages([message])

    logger.info("offer_rejected", connection_id=str(connection_id), deal_status=expected.value)
    await notify(
        db,
        user_for(connection, role.counterpart),
        "Offer declined",
        text.format(amount=format_amount(amount or 0)),
        deal_link(connection_id),
    )
    return connection


# ── Investor-initiated proposal ──────────────────────────────────────────────


async def propose(
    db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID, amount: Decimal
) -> Connection:
    """Investor offers to invest ``amount``; the founder must answer."""
    return await _open_offer(
        db,
        connection_id,
        actor_id,
        amount,
        Role.INVESTOR,
        DealStatus.PROPOSED,
        "🤝 Investment Proposal: {amount}\n\nAwaiting founder's response.",
        status=ConnectionStatus.DEAL_PENDING_INVESTOR,
    )


async def accept_proposal(db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID) -> Connection:
    return await _accept_offer(
        db,
        connection_id,
        actor_id,
        Role.FOUNDER,
        DealStatus.PROPOSED,
        "✅ Deal Accepted: {amount} investment recorded.",
    )


async def reject_proposal(db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID) -> Connection:
    return await _reject_offer(
        db,
        connection_id,
        actor_id,
        Role.FOUNDER,
        DealStatus.PROPOSED,
        "❌ Proposal Declined: {amount} was not accepted.",
        restore_status=True,
    )


# ── Founder-initiated reinvestment request ───────────────────────────────────


async def request_reinvestment(
    db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID, amount: Decimal
) -> Connection:
    """Founder asks the investor for ``amount`` more; the investor must answer."""
    return await _open_offer(
        db,
        connection_id,
        actor_id,
        amount,
        Role.FOUNDER,
        DealStatus.REQUESTED,
        "📈 Reinvestment Request: {amount}\n\nAwaiting investor's response.",
    )


async def accept_request(db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID) -> Connection:
    return await _accept_offer(
        db,
        connection_id,
        actor_id,
        Role.INVESTOR,
        DealStatus.REQUESTED,
        "✅ Reinvestment Accepted: {amount} investment recorded.",
    )


async def reject_request(db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID) -> Connection:
    return await _reject_offer(
        db,
        connection_id,
        actor_id,
        Role.INVESTOR,
        DealStatus.REQUESTED,
        "❌ Reinvestment Declined: {amount} was not accepted.",
        restore_status=False,
    )
