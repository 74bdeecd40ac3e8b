"""Native enums for all domain models."""

import enum


# ── Core ─────────────────────────────────────────────────────────────────────


class UserType(str, enum.Enum):
    FOUNDER = "founder"
    INVESTOR = "investor"


class IdeaStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    FUNDED = "funded"
    DEAL_DONE = "deal_done"
    COMPLETED = "completed"


class NotificationType(str, enum.Enum):
    INFO = "info"
    ACTION_REQUIRED = "action_required"
    PAYMENT = "payment"
    SYSTEM = "system"


# ── Connections & negotiation ────────────────────────────────────────────────


class ConnectionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMMUNICATING = "communicating"
    DEAL_PENDING_INVESTOR = "deal_pending_investor"
    DEAL_DONE = "deal_done"
    REJECTED = "rejected"


ACTIVE_CONNECTION_STATUSES = frozenset({
    ConnectionStatus.ACCEPTED,
    ConnectionStatus.COMMUNICATING,
    ConnectionStatus.DEAL_PENDING_INVESTOR,
    ConnectionStatus.DEAL_DONE,
})


class DealStatus(str, enum.Enum):
    NONE = "none"
    PROPOSED = "proposed"
    REQUESTED = "requested"
    REJECTED = "rejected"


OPEN_DEAL_STATUSES = frozenset({DealStatus.PROPOSED, DealStatus.REQUESTED})


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    ATTACHMENT = "attachment"


# ── Settlement ───────────────────────────────────────────────────────────────


class TransactionStatus(str, enum.Enum):
    INITIATOR_CONFIRMED = "initiator_confirmed"
    COMPLETED = "completed"


class SettlementKind(str, enum.Enum):
    INVESTMENT = "investment"
    PROFIT = "profit"
