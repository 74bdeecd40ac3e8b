"""Out-of-band payment claims awaiting (or holding) the payee's confirmation.

Investment and profit transactions are mirror images: the investor pays the
founder for the former, the founder pays the investor for the latter. A row is
created by the payer in ``initiator_confirmed`` and moved exactly once, by the
payee, to ``completed``.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from dealdesk.models.base import BaseModel
from dealdesk.models.enums import TransactionStatus


class PaymentTransactionMixin:
    connection_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("connections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    idea_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False
    )
    payer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    payee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payee_handle: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    proof_url: Mapped[str | None] = mapped_column(String(1000))
    status: Mapped[TransactionStatus] = mapped_column(
        nullable=False, default=TransactionStatus.INITIATOR_CONFIRMED
    )
    initiator_confirmed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payee_confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class InvestmentTransaction(PaymentTransactionMixin, BaseModel):
    """Investor → founder payment claim."""

    __tablename__ = "investment_transactions"


class ProfitTransaction(PaymentTransactionMixin, BaseModel):
    """Founder → investor profit payment claim."""

    __tablename__ = "profit_transactions"
