"""Tests for the notification fanout."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.models.connections import Connection
from dealdesk.models.enums import DealStatus, NotificationType
from dealdesk.modules.messaging.broker import broker, user_topic
from dealdesk.modules.negotiation import service as negotiation
from dealdesk.modules.notifications import service

from tests.conftest import CONNECTION_ID, FOUNDER_ID, INVESTOR_ID


@pytest.mark.anyio
async def test_notification_failure_never_fails_the_operation(db: AsyncSession, seed_data):
    with patch(
        "dealdesk.modules.notifications.service.create_notification",
        new_callable=AsyncMock,
        side_effect=RuntimeError("notifications table unavailable"),
    ) as mock_create:
        connection = await negotiation.propose(db, CONNECTION_ID, INVESTOR_ID, Decimal("50000"))

    mock_create.assert_awaited_once()
    assert connection.deal_status == DealStatus.PROPOSED

    stored = await db.get(Connection, CONNECTION_ID, populate_existing=True)
    assert stored.deal_status == DealStatus.PROPOSED
    assert await service.get_unread_count(db, FOUNDER_ID) == 0


@pytest.mark.anyio
async def test_notify_returns_none_on_failure(db: AsyncSession, seed_data):
    with patch(
        "dealdesk.modules.notifications.service.create_notification",
        new_callable=AsyncMock,
        side_effect=RuntimeError("boom"),
    ):
        result = await service.notify(db, FOUNDER_ID, "Title", "Body")
    assert result is None


@pytest.mark.anyio
async def test_notify_stores_and_pushes(db: AsyncSession, seed_data):
    topic = user_topic(FOUNDER_ID)
    queue = broker.subscribe(topic)
    try:
        notification = await service.notify(
            db, FOUNDER_ID, "💰 Profit Received", "₹5,000 confirmed", "/deal-center/x",
            NotificationType.PAYMENT,
        )
        event = await asyncio.wait_for(queue.get(), timeout=1.0)
    finally:
        broker.unsubscribe(topic, queue)

    assert notification is not None
    assert event["type"] == "notification"
    assert event["data"]["id"] == str(notification.id)
    assert event["data"]["link"] == "/deal-center/x"


@pytest.mark.anyio
async def test_list_and_mark_read(db: AsyncSession, seed_data):
    first = await service.notify(db, INVESTOR_ID, "One", "first")
    await service.notify(db, INVESTOR_ID, "Two", "second")

    items, total = await service.list_notifications(db, INVESTOR_ID)
    assert total == 2
    assert {n.title for n in items} == {"One", "Two"}
    assert await service.get_unread_count(db, INVESTOR_ID) == 2

    assert await service.mark_read(db, first.id, FOUNDER_ID) is False
    assert await service.mark_read(db, first.id, INVESTOR_ID) is True
    await db.commit()
    assert await service.get_unread_count(db, INVESTOR_ID) == 1

    assert await service.mark_all_read(db, INVESTOR_ID) == 1
    await db.commit()
    unread, total = await service.list_notifications(db, INVESTOR_ID, is_read=False)
    assert unread == [] and total == 0
