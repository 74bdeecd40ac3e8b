"""HTTP-level tests: routing, dependency wiring and the error envelope."""

from decimal import Decimal

import pytest
from httpx import AsyncClient

from tests.conftest import (
    CONNECTION_ID,
    FOUNDER_USER,
    INVESTOR_USER,
    OUTSIDER_USER,
    PNG_BYTES,
    PROOF_URL,
)


@pytest.mark.anyio
async def test_propose_accept_over_http(client: AsyncClient, as_user, seed_data):
    as_user(INVESTOR_USER)
    resp = await client.post(f"/v1/deals/{CONNECTION_ID}/proposal", json={"amount": "50000"})
    assert resp.status_code == 200
    assert resp.json()["deal_status"] == "proposed"
    assert resp.json()["status"] == "deal_pending_investor"

    as_user(FOUNDER_USER)
    resp = await client.post(f"/v1/deals/{CONNECTION_ID}/proposal/accept")
    assert resp.status_code == 200
    assert resp.json()["status"] == "deal_done"
    assert resp.json()["proposed_amount"] is None

    resp = await client.get(f"/v1/deals/{CONNECTION_ID}/summary")
    assert resp.status_code == 200
    assert Decimal(resp.json()["total_invested"]) == Decimal("50000")
    assert resp.headers["X-API-Version"] == "v1"


@pytest.mark.anyio
async def test_domain_errors_use_envelope(client: AsyncClient, as_user, seed_data):
    as_user(INVESTOR_USER)
    await client.post(f"/v1/deals/{CONNECTION_ID}/proposal", json={"amount": "50000"})

    resp = await client.post(f"/v1/deals/{CONNECTION_ID}/proposal", json={"amount": "1000"})
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "already_proposed"
    assert body["detail"] == {"connection_id": str(CONNECTION_ID)}

    resp = await client.post(f"/v1/deals/{CONNECTION_ID}/proposal/accept")
    assert resp.status_code == 403
    assert resp.json()["error"] == "not_authorized"


@pytest.mark.anyio
async def test_invalid_amount_is_400(client: AsyncClient, as_user, seed_data):
    as_user(INVESTOR_USER)
    resp = await client.post(f"/v1/deals/{CONNECTION_ID}/proposal", json={"amount": "-5"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_amount"


@pytest.mark.anyio
async def test_outsider_cannot_read_deal(client: AsyncClient, as_user, seed_data):
    as_user(OUTSIDER_USER)
    resp = await client.get(f"/v1/deals/{CONNECTION_ID}/messages")
    assert resp.status_code == 403

    resp = await client.get(f"/v1/connections/{CONNECTION_ID}")
    assert resp.status_code == 403


@pytest.mark.anyio
async def test_settlement_over_http(client: AsyncClient, as_user, seed_data, mock_storage):
    as_user(INVESTOR_USER)
    resp = await client.post(
        f"/v1/deals/{CONNECTION_ID}/settlements/investment/intent", json={"amount": "20000"},
    )
    assert resp.status_code == 200
    assert resp.json()["upi_uri"].startswith("upi://pay?pa=asha@upi")

    resp = await client.post(
        f"/v1/deals/{CONNECTION_ID}/settlements/investment",
        data={"amount": "20000"},
        files={"proof": ("proof.png", PNG_BYTES, "image/png")},
    )
    assert resp.status_code == 201
    transaction = resp.json()
    assert transaction["status"] == "initiator_confirmed"
    assert transaction["proof_url"] == PROOF_URL

    as_user(FOUNDER_USER)
    confirm_url = f"/v1/deals/settlements/investment/{transaction['id']}/confirm"
    resp = await client.post(confirm_url)
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"

    resp = await client.post(confirm_url)
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_completed"

    resp = await client.get(f"/v1/deals/{CONNECTION_ID}/investments")
    assert len(resp.json()) == 1


@pytest.mark.anyio
async def test_connection_request_requires_investor(client: AsyncClient, as_user, seed_data):
    as_user(FOUNDER_USER)
    resp = await client.get("/v1/connections", params={"active_only": True})
    assert resp.status_code == 200
    assert resp.json()["total"] == 1

    resp = await client.post("/v1/connections", json={"idea_id": str(CONNECTION_ID)})
    assert resp.status_code == 403


@pytest.mark.anyio
async def test_chat_over_http(client: AsyncClient, as_user, seed_data):
    as_user(INVESTOR_USER)
    resp = await client.post(f"/v1/deals/{CONNECTION_ID}/messages", json={"content": "Hello"})
    assert resp.status_code == 201
    assert resp.json()["seq"] == 1

    as_user(FOUNDER_USER)
    resp = await client.get(f"/v1/deals/{CONNECTION_ID}/messages")
    assert resp.json()["unread"] == 1
    resp = await client.put(f"/v1/deals/{CONNECTION_ID}/messages/read-all")
    assert resp.json() == {"marked_read": 1}

    resp = await client.get("/v1/notifications/unread-count")
    assert resp.status_code == 200
