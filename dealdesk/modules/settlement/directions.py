"""The two mirror-image settlement flows.

Investment and profit settlement run the same protocol with payer and payee
swapped, a different transaction table and a different ledger mint. Everything
that differs between them lives in a ``SettlementDirection``; the service is
written once against it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

from dealdesk.models.enums import SettlementKind
from dealdesk.models.settlement import InvestmentTransaction, ProfitTransaction
from dealdesk.modules.connections.roles import Role
from dealdesk.modules.ledger import service as ledger


@dataclass(frozen=True)
class SettlementDirection:
    kind: SettlementKind
    model: type[InvestmentTransaction] | type[ProfitTransaction]
    payer: Role
    payee: Role
    mint: Callable[..., Awaitable[object]]
    # Chat notices; formatted with amount= and description=
    initiated_text: str
    confirmed_text: str
    initiated_title: str
    confirmed_title: str
    default_description: str | None = None

    def ledger_description(self, transaction) -> str:
        if transaction.description:
            return transaction.description
        return f"UPI Transaction Confirmed: {transaction.id}"


INVESTMENT = SettlementDirection(
    kind=SettlementKind.INVESTMENT,
    model=InvestmentTransaction,
    payer=Role.INVESTOR,
    payee=Role.FOUNDER,
    mint=ledger.record_investment,
    initiated_text=(
        "💸 Investment Payment: {amount} via UPI\n\n"
        "✅ Please verify and confirm receipt in your Deal Center."
    ),
    confirmed_text="✅ Payment Received: {amount} confirmed. Equity recorded.",
    initiated_title="💸 Investment Payment Sent",
    confirmed_title="✅ Investment Confirmed",
)

PROFIT = SettlementDirection(
    kind=SettlementKind.PROFIT,
    model=ProfitTransaction,
    payer=Role.FOUNDER,
    payee=Role.INVESTOR,
    mint=ledger.record_profit,
    initiated_text=(
        "💰 Profit Payment Sent: {amount} via UPI.\n\n"
        "📋 {description}\n\n"
        "✅ Please confirm receipt in your Deal Center."
    ),
    confirmed_text="✅ Profit Received: {amount} confirmed by investor.",
    initiated_title="💰 Profit Payment Sent",
    confirmed_title="💰 Profit Received",
    default_description="Profit share",
)

DIRECTIONS: dict[SettlementKind, SettlementDirection] = {
    SettlementKind.INVESTMENT: INVESTMENT,
    SettlementKind.PROFIT: PROFIT,
}


def direction_for(kind: SettlementKind) -> SettlementDirection:
    return DIRECTIONS[SettlementKind(kind)]
