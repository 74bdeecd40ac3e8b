"""SQLAlchemy models package; import all models so Base.metadata is populated."""

from dealdesk.models.base import BaseModel, TimestampedModel
from dealdesk.models.connections import Connection, Message
from dealdesk.models.core import Idea, Notification, User
from dealdesk.models.enums import (
    ConnectionStatus,
    DealStatus,
    IdeaStatus,
    MessageType,
    NotificationType,
    SettlementKind,
    TransactionStatus,
    UserType,
)
from dealdesk.models.ledger import InvestmentRecord, ProfitShare
from dealdesk.models.settlement import InvestmentTransaction, ProfitTransaction

__all__ = [
    "BaseModel",
    "Connection",
    "ConnectionStatus",
    "DealStatus",
    "Idea",
    "IdeaStatus",
    "InvestmentRecord",
    "InvestmentTransaction",
    "Message",
    "MessageType",
    "Notification",
    "NotificationType",
    "ProfitShare",
    "ProfitTransaction",
    "SettlementKind",
    "TimestampedModel",
    "TransactionStatus",
    "User",
    "UserType",
]
