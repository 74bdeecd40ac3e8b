"""Tests for the negotiation state machine: proposals and reinvestment requests."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.core.errors import (
    AlreadyProposed,
    AuthorizationError,
    InvalidAmount,
    InvalidState,
    NotAuthorized,
    StateConflict,
    ValidationError,
)
from dealdesk.models.connections import Connection, Message
from dealdesk.models.core import Idea, Notification
from dealdesk.models.enums import ConnectionStatus, DealStatus, IdeaStatus
from dealdesk.models.ledger import InvestmentRecord
from dealdesk.modules.ledger import service as ledger_service
from dealdesk.modules.negotiation import service

from tests.conftest import CONNECTION_ID, FOUNDER_ID, IDEA_ID, INVESTOR_ID, OUTSIDER_ID


async def _ledger_rows(db: AsyncSession) -> list[InvestmentRecord]:
    result = await db.execute(select(InvestmentRecord).where(InvestmentRecord.connection_id == CONNECTION_ID))
    return list(result.scalars().all())


async def _idea(db: AsyncSession) -> Idea:
    return await db.get(Idea, IDEA_ID, populate_existing=True)


# ── Proposal lifecycle ───────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_propose_and_accept_records_investment(db: AsyncSession, seed_data):
    connection = await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))
    assert connection.deal_status == DealStatus.PROPOSED
    assert connection.status == ConnectionStatus.DEAL_PENDING_INVESTOR
    assert connection.proposed_amount == Decimal("50000")

    connection = await service.accept_proposal(db, CONNECTION_ID, FOUNDER_ID)
    assert connection.deal_status == DealStatus.NONE
    assert connection.status == ConnectionStatus.DEAL_DONE
    assert connection.proposed_amount is None

    rows = await _ledger_rows(db)
    assert len(rows) == 1
    assert rows[0].amount == Decimal("50000")
    assert rows[0].transaction_id is None

    idea = await _idea(db)
    assert idea.investment_received == Decimal("50000")
    assert idea.status == IdeaStatus.FUNDED


@pytest.mark.anyio
async def test_every_transition_appends_a_message(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))
    await service.accept_proposal(db, CONNECTION_ID, FOUNDER_ID)

    result = await db.execute(
        select(Message).where(Message.connection_id == CONNECTION_ID).order_by(Message.seq)
    )
    messages = list(result.scalars().all())
    assert [m.seq for m in messages] == [1, 2]
    assert messages[0].sender_id == INVESTOR_ID
    assert "₹50,000" in messages[0].content
    assert messages[1].sender_id == FOUNDER_ID
    assert "Deal Accepted" in messages[1].content


@pytest.mark.anyio
async def test_propose_notifies_founder(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("1500"))

    result = await db.execute(select(Notification).where(Notification.user_id == FOUNDER_ID))
    notifications = list(result.scalars().all())
    assert len(notifications) == 1
    assert notifications[0].link == f"/deal-center/{CONNECTION_ID}"


@pytest.mark.anyio
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-100")])
async def test_propose_rejects_non_positive_amount(db: AsyncSession, seed_data, amount):
    with pytest.raises(InvalidAmount) as exc_info:
        await service.propose(db, CONNECTION_ID, INVESTOR_ID, amount)
    assert isinstance(exc_info.value, ValidationError)

    connection = await db.get(Connection, CONNECTION_ID, populate_existing=True)
    assert connection.deal_status == DealStatus.NONE
    assert connection.proposed_amount is None


@pytest.mark.anyio
async def test_second_proposal_while_open_fails(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))

    with pytest.raises(AlreadyProposed):
        await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("70000"))

    connection = await db.get(Connection, CONNECTION_ID, populate_existing=True)
    assert connection.proposed_amount == Decimal("50000")


@pytest.mark.anyio
async def test_reinvestment_request_during_open_proposal_conflicts(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))

    with pytest.raises(StateConflict):
        await service.request_reinvestment(db, CONNECTION_ID, FOUNDER_ID, Decimal("10000"))

    connection = await db.get(Connection, CONNECTION_ID, populate_existing=True)
    assert connection.deal_status == DealStatus.PROPOSED
    assert connection.proposed_amount == Decimal("50000")


@pytest.mark.anyio
async def test_founder_cannot_propose(db: AsyncSession, seed_data):
    with pytest.raises(NotAuthorized):
        await service.propose(db, CONNECTION_ID, FOUNDER_ID, Decimal("50000"))


@pytest.mark.anyio
async def test_non_founder_accept_is_rejected_without_ledger_entry(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))

    for actor in (INVESTOR_ID, OUTSIDER_ID):
        with pytest.raises(AuthorizationError):
            await service.accept_proposal(db, CONNECTION_ID, actor)

    assert await _ledger_rows(db) == []
    idea = await _idea(db)
    assert idea.investment_received == Decimal("0")


@pytest.mark.anyio
async def test_accept_twice_credits_once(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))
    await service.accept_proposal(db, CONNECTION_ID, FOUNDER_ID)

    with pytest.raises(InvalidState):
        await service.accept_proposal(db, CONNECTION_ID, FOUNDER_ID)

    assert len(await _ledger_rows(db)) == 1
    idea = await _idea(db)
    assert idea.investment_received == Decimal("50000")


@pytest.mark.anyio
async def test_accept_without_offer_is_invalid_state(db: AsyncSession, seed_data):
    with pytest.raises(InvalidState):
        await service.accept_proposal(db, CONNECTION_ID, FOUNDER_ID)


@pytest.mark.anyio
async def test_reject_proposal_reopens_negotiation(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))
    connection = await service.reject_proposal(db, CONNECTION_ID, FOUNDER_ID)

    assert connection.deal_status == DealStatus.REJECTED
    assert connection.proposed_amount is None
    assert connection.status == ConnectionStatus.COMMUNICATING
    assert await _ledger_rows(db) == []

    connection = await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("40000"))
    assert connection.deal_status == DealStatus.PROPOSED
    assert connection.proposed_amount == Decimal("40000")


@pytest.mark.anyio
async def test_reject_after_prior_investment_keeps_deal_done(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))
    await service.accept_proposal(db, CONNECTION_ID, FOUNDER_ID)

    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("25000"))
    connection = await service.reject_proposal(db, CONNECTION_ID, FOUNDER_ID)

    assert connection.status == ConnectionStatus.DEAL_DONE
    assert connection.deal_status == DealStatus.REJECTED


@pytest.mark.anyio
async def test_propose_on_pending_connection_is_invalid(db: AsyncSession, seed_data):
    connection = await db.get(Connection, CONNECTION_ID)
    connection.status = ConnectionStatus.PENDING
    await db.commit()

    with pytest.raises(InvalidState):
        await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))


# ── Reinvestment requests ────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_request_reinvestment_and_accept(db: AsyncSession, seed_data):
    await service.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))
    await service.accept_proposal(db, CONNECTION_ID, FOUNDER_ID)

    connection = await service.request_reinvestment(db, CONNECTION_ID, FOUNDER_ID, Decimal("10000"))
    assert connection.deal_status == DealStatus.REQUESTED
    assert connection.proposed_amount == Decimal("10000")

    with pytest.raises(NotAuthorized):
        await service.accept_request(db, CONNECTION_ID, FOUNDER_ID)

    connection = await service.accept_request(db, CONNECTION_ID, INVESTOR_ID)
    assert connection.deal_status == DealStatus.NONE
    assert connection.proposed_amount is None

    idea = await _idea(db)
    assert idea.investment_received == Decimal("60000")
    assert await ledger_service.idea_ledger_total(db, IDEA_ID) == idea.investment_received


@pytest.mark.anyio
async def test_reject_request(db: AsyncSession, seed_data):
    await service.request_reinvestment(db, CONNECTION_ID, FOUNDER_ID, Decimal("10000"))
    connection = await service.reject_request(db, CONNECTION_ID, INVESTOR_ID)

    assert connection.deal_status == DealStatus.REJECTED
    assert connection.proposed_amount is None
    assert connection.status == ConnectionStatus.COMMUNICATING

    count = (await db.execute(select(func.count()).select_from(InvestmentRecord))).scalar()
    assert count == 0


@pytest.mark.anyio
async def test_request_with_invalid_amount(db: AsyncSession, seed_data):
    with pytest.raises(InvalidAmount):
        await service.request_reinvestment(db, CONNECTION_ID, FOUNDER_ID, Decimal("0"))
