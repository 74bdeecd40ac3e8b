"""Core models: User, Idea, Notification.

Users and ideas are owned by the profile and marketplace services; only the
columns the deal engine reads or writes are mapped here.
"""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from dealdesk.models.base import BaseModel, TimestampedModel
from dealdesk.models.enums import IdeaStatus, NotificationType, UserType


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_email", "email", unique=True),
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_type: Mapped[UserType] = mapped_column(nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(512))
    # UPI virtual payment address; presence-checked before any settlement
    payout_handle: Mapped[str | None] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(default=True, server_default="true", nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, type={self.user_type.value})>"


class Idea(BaseModel):
    __tablename__ = "ideas"
    __table_args__ = (
        Index("ix_ideas_founder_id", "founder_id"),
    )

    founder_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[IdeaStatus] = mapped_column(nullable=False, default=IdeaStatus.PENDING)
    # Denormalized running total; only ever incremented alongside an InvestmentRecord
    investment_received: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0"), server_default="0"
    )


class Notification(TimestampedModel):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_id_is_read", "user_id", "is_read"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[NotificationType] = mapped_column(nullable=False, default=NotificationType.INFO)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(1000))
    is_read: Mapped[bool] = mapped_column(default=False, server_default="false", nullable=False)
