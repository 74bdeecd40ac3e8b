"""Base model classes shared by every DealDesk table.

Two shapes exist: ``BaseModel`` for rows that change over their life
(connections, claims, users) and ``TimestampedModel`` for rows that are only
ever inserted (messages, ledger entries, notifications).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from dealdesk.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _IdentityMixin:
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)})>"


class BaseModel(_IdentityMixin, Base):
    """Mutable record: also tracks updated_at and a soft-delete flag."""

    __abstract__ = True

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    is_deleted: Mapped[bool] = mapped_column(
        default=False,
        server_default="false",
        nullable=False,
    )


class TimestampedModel(_IdentityMixin, Base):
    """Append-only record."""

    __abstract__ = True
