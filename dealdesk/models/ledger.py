"""Immutable ledger of confirmed money movement.

Rows are inserted exactly once and never updated or deleted. Reported totals
(invested, profit, ROI) are sums over these tables only.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from dealdesk.models.base import TimestampedModel


class LedgerEntryMixin:
    connection_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("connections.id", ondelete="SET NULL"), nullable=True
    )
    idea_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False
    )
    founder_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    investor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    proof_url: Mapped[str | None] = mapped_column(String(1000))
    description: Mapped[str | None] = mapped_column(Text)


class InvestmentRecord(LedgerEntryMixin, TimestampedModel):
    __tablename__ = "investment_records"
    __table_args__ = (
        Index("ix_investment_records_idea_id", "idea_id"),
        Index("ix_investment_records_connection_id", "connection_id"),
    )

    # NULL for the instant-accept path; unique so one transaction mints one row
    transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("investment_transactions.id", ondelete="RESTRICT"),
        nullable=True,
        unique=True,
    )


class ProfitShare(LedgerEntryMixin, TimestampedModel):
    __tablename__ = "profit_shares"
    __table_args__ = (
        Index("ix_profit_shares_connection_id", "connection_id"),
    )

    transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profit_transactions.id", ondelete="RESTRICT"),
        nullable=True,
        unique=True,
    )
