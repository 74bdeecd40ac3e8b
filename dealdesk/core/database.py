from decimal import Decimal

import structlog
from sqlalchemy import Numeric
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from dealdesk.core.config import settings

logger = structlog.get_logger()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("postgresql"):
        return {
            "pool_size": 20,
            "max_overflow": 10,
            "pool_pre_ping": True,            # Drop stale connections before use
            "pool_recycle": 1800,
            "pool_timeout": 30,
            "connect_args": {
                "server_settings": {
                    "statement_timeout": "30000",
                    "idle_in_transaction_session_timeout": "60000",
                    "lock_timeout": "10000",
                },
                "command_timeout": 30,
            },
        }
    return {}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.APP_DEBUG,
    **_engine_kwargs(settings.DATABASE_URL),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    type_annotation_map = {
        Decimal: Numeric(19, 4),
    }


async def get_db() -> AsyncSession:  # type: ignore[misc]
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
