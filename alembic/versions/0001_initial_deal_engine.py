"""initial_deal_engine

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

_user_type = sa.Enum("FOUNDER", "INVESTOR", name="usertype")
_idea_status = sa.Enum("PENDING", "IN_PROGRESS", "FUNDED", "DEAL_DONE", "COMPLETED", name="ideastatus")
_notification_type = sa.Enum("INFO", "ACTION_REQUIRED", "PAYMENT", "SYSTEM", name="notificationtype")
_connection_status = sa.Enum(
    "PENDING", "ACCEPTED", "COMMUNICATING", "DEAL_PENDING_INVESTOR", "DEAL_DONE", "REJECTED",
    name="connectionstatus",
)
_deal_status = sa.Enum("NONE", "PROPOSED", "REQUESTED", "REJECTED", name="dealstatus")
_message_type = sa.Enum("TEXT", "IMAGE", "ATTACHMENT", name="messagetype")
_transaction_status = sa.Enum("INITIATOR_CONFIRMED", "COMPLETED", name="transactionstatus")


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default="false", nullable=False),
    ]


def _append_only_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _transaction_columns() -> list[sa.Column]:
    return [
        sa.Column("connection_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("idea_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("payer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("payee_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(19, 4), nullable=False),
        sa.Column("payee_handle", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("proof_url", sa.String(1000), nullable=True),
        sa.Column("status", _transaction_status, nullable=False),
        sa.Column("initiator_confirmed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payee_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["connection_id"], ["connections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["payer_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["payee_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    ]


def _ledger_columns(transaction_table: str) -> list[sa.Column]:
    return [
        sa.Column("connection_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("idea_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("founder_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("investor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(19, 4), nullable=False),
        sa.Column("proof_url", sa.String(1000), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("transaction_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(["connection_id"], ["connections.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["founder_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["investor_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["transaction_id"], [f"{transaction_table}.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("transaction_id"),
        sa.PrimaryKeyConstraint("id"),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("user_type", _user_type, nullable=False),
        sa.Column("avatar_url", sa.String(512), nullable=True),
        sa.Column("payout_handle", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "ideas",
        *_base_columns(),
        sa.Column("founder_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(100), nullable=True),
        sa.Column("status", _idea_status, nullable=False),
        sa.Column("investment_received", sa.Numeric(19, 4), server_default="0", nullable=False),
        sa.ForeignKeyConstraint(["founder_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ideas_founder_id", "ideas", ["founder_id"])

    op.create_table(
        "notifications",
        *_append_only_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", _notification_type, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(1000), nullable=True),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id_is_read", "notifications", ["user_id", "is_read"])

    op.create_table(
        "connections",
        *_base_columns(),
        sa.Column("idea_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("founder_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("investor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", _connection_status, nullable=False),
        sa.Column("deal_status", _deal_status, nullable=False),
        sa.Column("proposed_amount", sa.Numeric(19, 4), nullable=True),
        sa.Column("message_seq", sa.Integer(), server_default="0", nullable=False),
        sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["founder_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["investor_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("idea_id", "investor_id", name="uq_connection_idea_investor"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_connections_founder_id", "connections", ["founder_id"])
    op.create_index("ix_connections_investor_id", "connections", ["investor_id"])

    op.create_table(
        "messages",
        *_append_only_columns(),
        sa.Column("connection_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("sender_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", _message_type, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
        sa.ForeignKeyConstraint(["connection_id"], ["connections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("connection_id", "seq", name="uq_message_connection_seq"),
        sa.PrimaryKeyConstraint("id"),
    )

    for table in ("investment_transactions", "profit_transactions"):
        op.create_table(table, *_base_columns(), *_transaction_columns())
        op.create_index(f"ix_{table}_connection_id", table, ["connection_id"])

    op.create_table("investment_records", *_append_only_columns(), *_ledger_columns("investment_transactions"))
    op.create_index("ix_investment_records_idea_id", "investment_records", ["idea_id"])
    op.create_index("ix_investment_records_connection_id", "investment_records", ["connection_id"])

    op.create_table("profit_shares", *_append_only_columns(), *_ledger_columns("profit_transactions"))
    op.create_index("ix_profit_shares_connection_id", "profit_shares", ["connection_id"])


def downgrade() -> None:
    op.drop_table("profit_shares")
    op.drop_table("investment_records")
    op.drop_table("profit_transactions")
    op.drop_table("investment_transactions")
    op.drop_table("messages")
    op.drop_table("connections")
    op.drop_table("notifications")
    op.drop_table("ideas")
    op.drop_table("users")
    bind = op.get_bind()
    for enum in (
        _transaction_status,
        _message_type,
        _deal_status,
        _connection_status,
        _notification_type,
        _idea_status,
        _user_type,
    ):
        enum.drop(bind, checkfirst=True)
