"""Founder–investor connection and its message log."""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from dealdesk.models.base import BaseModel, TimestampedModel
from dealdesk.models.enums import ConnectionStatus, DealStatus, MessageType


class Connection(BaseModel):
    """One founder, one investor, one idea: chat eligibility plus negotiation state."""

    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("idea_id", "investor_id", name="uq_connection_idea_investor"),
        Index("ix_connections_founder_id", "founder_id"),
        Index("ix_connections_investor_id", "investor_id"),
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
    status: Mapped[ConnectionStatus] = mapped_column(
        nullable=False, default=ConnectionStatus.PENDING
    )
    deal_status: Mapped[DealStatus] = mapped_column(nullable=False, default=DealStatus.NONE)
    # Set iff deal_status is proposed or requested
    proposed_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    message_seq: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )


class Message(TimestampedModel):
    """Append-only chat entry; human chat and negotiation audit trail in one log."""

    __tablename__ = "messages"
    __table_args__ = (
        UniqueConstraint("connection_id", "seq", name="uq_message_connection_seq"),
    )

    connection_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("connections.id", ondelete="CASCADE"), nullable=False
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[MessageType] = mapped_column(nullable=False, default=MessageType.TEXT)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(default=False, server_default="false", nullable=False)
