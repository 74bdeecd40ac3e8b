"""Ledger minting and reporting.

``record_investment`` and ``record_profit`` are the only code paths that insert
ledger rows; neither commits, so the caller's state transition, the ledger row
and the aggregate increment land in one transaction. Every reported figure is
a sum over ledger rows, never over pending transactions.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy import case, func, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.core.errors import InvalidAmount, NotFound
from dealdesk.models.connections import Connection
from dealdesk.models.core import Idea
from dealdesk.models.enums import IdeaStatus, NotificationType, SettlementKind, TransactionStatus
from dealdesk.models.ledger import InvestmentRecord, ProfitShare
from dealdesk.models.settlement import InvestmentTransaction, ProfitTransaction
from dealdesk.modules.connections.roles import Role, require_role, resolve_role
from dealdesk.modules.connections.service import deal_link, ensure_active, get_connection
from dealdesk.modules.ledger.formatting import format_amount
from dealdesk.modules.ledger.schemas import DealSummaryResponse
from dealdesk.modules.messaging.service import append_message, publish_messages
from dealdesk.modules.notifications.service import notify

logger = structlog.get_logger()


_PAISE = Decimal("0.01")
# Numeric(19, 4) leaves 15 integer digits
_MAX_AMOUNT = Decimal(10) ** 15


def validate_amount(amount: Decimal) -> Decimal:
    """Return ``amount`` in rupees and paise, or raise InvalidAmount."""
    amount = Decimal(amount)
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount("Amount must be greater than zero", amount=str(amount))
    if amount >= _MAX_AMOUNT:
        raise InvalidAmount("Amount is too large", amount=str(amount))
    quantized = amount.quantize(_PAISE)
    if quantized != amount:
        raise InvalidAmount("Amount cannot be smaller than one paisa", amount=str(amount))
    return quantized


async def record_investment(
    db: AsyncSession,
    connection: Connection,
    amount: Decimal,
    transaction_id: uuid.UUID | None = None,
    proof_url: str | None = None,
    description: str | None = None,
) -> InvestmentRecord:
    """Mint an InvestmentRecord and bump the idea aggregate in the same unit."""
    record = InvestmentRecord(
        connection_id=connection.id,
        idea_id=connection.idea_id,
        founder_id=connection.founder_id,
        investor_id=connection.investor_id,
        amount=amount,
        transaction_id=transaction_id,
        proof_url=proof_url,
        description=description,
    )
    db.add(record)

    # Atomic increment; concurrent confirmations on other connections of the
    # same idea must not read-then-write the total.
    result = await db.execute(
        update(Idea)
        .where(Idea.id == connection.idea_id)
        .values(
            investment_received=Idea.investment_received + amount,
            # Only the first investment moves the idea forward
            status=case(
                (
                    Idea.status.in_([IdeaStatus.PENDING, IdeaStatus.IN_PROGRESS]),
                    literal(IdeaStatus.FUNDED, Idea.status.type),
                ),
                else_=Idea.status,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFound("Idea not found", idea_id=str(connection.idea_id))

    await db.flush()
    logger.info(
        "investment_recorded",
        connection_id=str(connection.id),
        idea_id=str(connection.idea_id),
        amount=str(amount),
        verified=transaction_id is not None,
    )
    return record


async def record_profit(
    db: AsyncSession,
    connection: Connection,
    amount: Decimal,
    transaction_id: uuid.UUID | None = None,
    proof_url: str | None = None,
    description: str | None = None,
) -> ProfitShare:
    """Mint a ProfitShare. Profit never touches the idea aggregate."""
    share = ProfitShare(
        connection_id=connection.id,
        idea_id=connection.idea_id,
        founder_id=connection.founder_id,
        investor_id=connection.investor_id,
        amount=amount,
        transaction_id=transaction_id,
        proof_url=proof_url,
        description=description,
    )
    db.add(share)
    await db.flush()
    logger.info(
        "profit_recorded",
        connection_id=str(connection.id),
        amount=str(amount),
        verified=transaction_id is not None,
    )
    return share


async def record_profit_share(
    db: AsyncSession,
    connection_id: uuid.UUID,
    actor_id: uuid.UUID,
    amount: Decimal,
    description: str | None = None,
) -> ProfitShare:
    """Founder records a profit payout directly, without the proof workflow."""
    connection = await get_connection(db, connection_id)
    require_role(connection, actor_id, Role.FOUNDER)
    ensure_active(connection)
    amount = validate_amount(amount)
    description = description or f"Profit share on {date.today():%d %b %Y}"

    share = await record_profit(db, connection, amount, description=description)
    message = await append_message(
        db,
        connection_id,
        actor_id,
        f"💰 Profit Shared: {format_amount(amount)} - {description}",
    )
    await db.commit()
    await publish_messages([message])

    await notify(
        db,
        connection.investor_id,
        "💰 Profit Received",
        f"You received a profit share of {format_amount(amount)}",
        deal_link(connection_id),
        NotificationType.PAYMENT,
    )
    return share


# ── Reporting ────────────────────────────────────────────────────────────────


async def _sum(db: AsyncSession, column, *criteria) -> Decimal:
    result = await db.execute(select(func.coalesce(func.sum(column), 0)).where(*criteria))
    return Decimal(str(result.scalar() or 0))


def compute_roi(total_invested: Decimal, total_profit: Decimal) -> Decimal:
    """Profit as a percentage of capital, one decimal; 0.0 with no capital."""
    if total_invested <= 0:
        return Decimal("0.0")
    return (total_profit / total_invested * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


async def get_deal_summary(
    db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID
) -> DealSummaryResponse:
    connection = await get_connection(db, connection_id)
    role = resolve_role(connection, actor_id)

    invested = await _sum(db, InvestmentRecord.amount, InvestmentRecord.connection_id == connection_id)
    invested_verified = await _sum(
        db,
        InvestmentRecord.amount,
        InvestmentRecord.connection_id == connection_id,
        InvestmentRecord.transaction_id.is_not(None),
    )
    profit = await _sum(db, ProfitShare.amount, ProfitShare.connection_id == connection_id)
    profit_verified = await _sum(
        db,
        ProfitShare.amount,
        ProfitShare.connection_id == connection_id,
        ProfitShare.transaction_id.is_not(None),
    )

    pending = 0
    for model in (InvestmentTransaction, ProfitTransaction):
        result = await db.execute(
            select(func.count()).where(
                model.connection_id == connection_id,
                model.status == TransactionStatus.INITIATOR_CONFIRMED,
            )
        )
        pending += result.scalar() or 0

    return DealSummaryResponse(
        connection_id=connection.id,
        role=role.value,
        status=connection.status,
        deal_status=connection.deal_status,
        proposed_amount=connection.proposed_amount,
        total_invested=invested,
        total_invested_verified=invested_verified,
        total_invested_unverified=invested - invested_verified,
        total_profit=profit,
        total_profit_verified=profit_verified,
        total_profit_unverified=profit - profit_verified,
        roi_percent=compute_roi(invested, profit),
        pending_settlements=pending,
    )


async def list_investments(db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID) -> list[InvestmentRecord]:
    connection = await get_connection(db, connection_id)
    resolve_role(connection, actor_id)
    result = await db.execute(
        select(InvestmentRecord)
        .where(InvestmentRecord.connection_id == connection_id)
        .order_by(InvestmentRecord.created_at.desc())
    )
    return list(result.scalars().all())


async def list_profit_shares(db: AsyncSession, connection_id: uuid.UUID, actor_id: uuid.UUID) -> list[ProfitShare]:
    connection = await get_connection(db, connection_id)
    resolve_role(connection, actor_id)
    result = await db.execute(
        select(ProfitShare)
        .where(ProfitShare.connection_id == connection_id)
        .order_by(ProfitShare.created_at.desc())
    )
    return list(result.scalars().all())


async def idea_ledger_total(db: AsyncSession, idea_id: uuid.UUID) -> Decimal:
    """Sum of confirmed investments for an idea; must equal idea.investment_received."""
    return await _sum(db, InvestmentRecord.amount, InvestmentRecord.idea_id == idea_id)


async def has_investment(db: AsyncSession, connection_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(InvestmentRecord.id).where(InvestmentRecord.connection_id == connection_id).limit(1)
    )
    return result.first() is not None


async def list_transactions(
    db: AsyncSession,
    connection_id: uuid.UUID,
    actor_id: uuid.UUID,
    kind: SettlementKind = SettlementKind.INVESTMENT,
    status: TransactionStatus | None = None,
) -> list[InvestmentTransaction] | list[ProfitTransaction]:
    """Settlement claims for one direction, pending and completed, newest first."""
    connection = await get_connection(db, connection_id)
    resolve_role(connection, actor_id)

    model = InvestmentTransaction if kind == SettlementKind.INVESTMENT else ProfitTransaction
    stmt = select(model).where(model.connection_id == connection_id, model.is_deleted.is_(False))
    if status is not None:
        stmt = stmt.where(model.status == status)
    result = await db.execute(stmt.order_by(model.created_at.desc()))
    return list(result.scalars().all())
