"""Tests for the connection registry and role resolution."""

import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.core.errors import InvalidState, NotAuthorized, NotFound, StateConflict
from dealdesk.models.connections import Connection
from dealdesk.models.core import Idea, Notification
from dealdesk.models.enums import ConnectionStatus, IdeaStatus
from dealdesk.modules.connections import service
from dealdesk.modules.connections.roles import Role, require_role, resolve_role, user_for

from tests.conftest import CONNECTION_ID, FOUNDER_ID, IDEA_ID, INVESTOR_ID, OUTSIDER_ID


async def _new_idea(db: AsyncSession) -> Idea:
    idea = Idea(id=uuid.uuid4(), founder_id=FOUNDER_ID, title="Cold Chain", status=IdeaStatus.PENDING)
    db.add(idea)
    await db.commit()
    return idea


@pytest.mark.anyio
async def test_request_connection_starts_pending(db: AsyncSession, seed_data):
    idea = await _new_idea(db)

    connection = await service.request_connection(db, INVESTOR_ID, idea.id)
    assert connection.status == ConnectionStatus.PENDING
    assert connection.founder_id == FOUNDER_ID
    assert connection.investor_id == INVESTOR_ID

    result = await db.execute(select(Notification).where(Notification.user_id == FOUNDER_ID))
    notification = result.scalar_one()
    assert "Ravi Investor" in notification.message


@pytest.mark.anyio
async def test_duplicate_request_conflicts(db: AsyncSession, seed_data):
    with pytest.raises(StateConflict):
        await service.request_connection(db, INVESTOR_ID, IDEA_ID)


@pytest.mark.anyio
async def test_founder_cannot_request(db: AsyncSession, seed_data):
    idea = await _new_idea(db)
    with pytest.raises(NotAuthorized):
        await service.request_connection(db, FOUNDER_ID, idea.id)


@pytest.mark.anyio
async def test_request_unknown_idea(db: AsyncSession, seed_data):
    with pytest.raises(NotFound):
        await service.request_connection(db, INVESTOR_ID, uuid.uuid4())


@pytest.mark.anyio
async def test_founder_accepts_once(db: AsyncSession, seed_data):
    idea = await _new_idea(db)
    pending = await service.request_connection(db, OUTSIDER_ID, idea.id)

    with pytest.raises(NotAuthorized):
        await service.respond_to_request(db, pending.id, OUTSIDER_ID, accept=True)

    connection = await service.respond_to_request(db, pending.id, FOUNDER_ID, accept=True)
    assert connection.status == ConnectionStatus.COMMUNICATING

    with pytest.raises(InvalidState):
        await service.respond_to_request(db, pending.id, FOUNDER_ID, accept=False)


@pytest.mark.anyio
async def test_founder_declines(db: AsyncSession, seed_data):
    idea = await _new_idea(db)
    pending = await service.request_connection(db, OUTSIDER_ID, idea.id)

    connection = await service.respond_to_request(db, pending.id, FOUNDER_ID, accept=False)
    assert connection.status == ConnectionStatus.REJECTED


@pytest.mark.anyio
async def test_list_connections_active_only(db: AsyncSession, seed_data):
    idea = await _new_idea(db)
    await service.request_connection(db, INVESTOR_ID, idea.id)

    everything = await service.list_connections(db, INVESTOR_ID)
    active = await service.list_connections(db, INVESTOR_ID, active_only=True)

    assert len(everything) == 2
    assert [c.id for c in active] == [CONNECTION_ID]
    assert await service.list_connections(db, OUTSIDER_ID) == []


@pytest.mark.anyio
async def test_all_digit_ids_load_back_as_uuids(engine, seed_data):
    # A fresh session so the row comes from the database, not the identity map
    async with AsyncSession(bind=engine) as session:
        connection = await service.get_connection(session, CONNECTION_ID)

    assert isinstance(connection.id, uuid.UUID)
    assert connection.id == CONNECTION_ID
    assert connection.founder_id == FOUNDER_ID
    assert connection.investor_id == INVESTOR_ID
    assert connection.idea_id == IDEA_ID


@pytest.mark.anyio
async def test_get_connection_not_found(db: AsyncSession, seed_data):
    with pytest.raises(NotFound):
        await service.get_connection(db, uuid.uuid4())


# ── Roles ────────────────────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_role_resolution(db: AsyncSession, seed_data):
    connection = await db.get(Connection, CONNECTION_ID)

    assert resolve_role(connection, FOUNDER_ID) is Role.FOUNDER
    assert resolve_role(connection, INVESTOR_ID) is Role.INVESTOR
    assert Role.FOUNDER.counterpart is Role.INVESTOR
    assert user_for(connection, Role.INVESTOR.counterpart) == FOUNDER_ID

    with pytest.raises(NotAuthorized):
        resolve_role(connection, OUTSIDER_ID)
    with pytest.raises(NotAuthorized):
        require_role(connection, INVESTOR_ID, Role.FOUNDER)
