"""Shared test fixtures for the DealDesk test suite."""

import uuid
from collections.abc import AsyncGenerator
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

import dealdesk.models  # noqa: F401  register all models
from dealdesk.core.database import Base
from dealdesk.models.connections import Connection
from dealdesk.models.core import Idea, User
from dealdesk.models.enums import ConnectionStatus, IdeaStatus, UserType
from dealdesk.schemas.auth import CurrentUser

# ── Test Data ────────────────────────────────────────────────────────────────

FOUNDER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
INVESTOR_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
OUTSIDER_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")
IDEA_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
CONNECTION_ID = uuid.UUID("00000000-0000-0000-0000-000000000020")

PROOF_URL = "https://blob.test/payment-proofs/proof.png"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"0" * 64

FOUNDER_USER = CurrentUser(
    user_id=FOUNDER_ID,
    user_type=UserType.FOUNDER,
    email="asha@example.com",
    name="Asha Founder",
)

INVESTOR_USER = CurrentUser(
    user_id=INVESTOR_ID,
    user_type=UserType.INVESTOR,
    email="ravi@example.com",
    name="Ravi Investor",
)

OUTSIDER_USER = CurrentUser(
    user_id=OUTSIDER_ID,
    user_type=UserType.INVESTOR,
    email="olga@example.com",
    name="Olga Outsider",
)


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """A fresh file-backed SQLite database per test.

    A file (not :memory:) so that separate sessions, such as the one the
    notification fanout opens, see the same data.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'dealdesk.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    async with AsyncSession(bind=engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def seed_data(db: AsyncSession) -> Connection:
    """Founder, investor, outsider, one idea and an accepted connection."""
    db.add_all([
        User(
            id=FOUNDER_ID, email="asha@example.com", name="Asha Founder",
            user_type=UserType.FOUNDER, payout_handle="asha@upi",
        ),
        User(
            id=INVESTOR_ID, email="ravi@example.com", name="Ravi Investor",
            user_type=UserType.INVESTOR, payout_handle="ravi@upi",
        ),
        User(
            id=OUTSIDER_ID, email="olga@example.com", name="Olga Outsider",
            user_type=UserType.INVESTOR,
        ),
    ])
    await db.flush()
    db.add(Idea(
        id=IDEA_ID, founder_id=FOUNDER_ID, title="Solar Kiosks",
        status=IdeaStatus.IN_PROGRESS, investment_received=Decimal("0"),
    ))
    await db.flush()
    connection = Connection(
        id=CONNECTION_ID, idea_id=IDEA_ID, founder_id=FOUNDER_ID,
        investor_id=INVESTOR_ID, status=ConnectionStatus.COMMUNICATING,
    )
    db.add(connection)
    await db.commit()
    return connection


@pytest.fixture
def mock_storage():
    """Blob uploads succeed without touching S3."""
    with patch(
        "dealdesk.services.storage.put",
        new_callable=AsyncMock,
        return_value=PROOF_URL,
    ) as mock:
        yield mock


def _override_auth(user: CurrentUser):
    async def _override():
        return user
    return _override


@pytest.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient]:
    from dealdesk.core.database import get_db
    from dealdesk.main import app

    async def _override_db():
        async with AsyncSession(bind=engine, expire_on_commit=False) as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = _override_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def as_user():
    """Switch the authenticated user for subsequent requests."""
    from dealdesk.auth.dependencies import get_current_user
    from dealdesk.main import app

    def _as(user: CurrentUser) -> None:
        app.dependency_overrides[get_current_user] = _override_auth(user)

    return _as
