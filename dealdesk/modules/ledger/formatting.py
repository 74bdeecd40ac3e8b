"""Money formatting for chat notices and deal summaries."""

from decimal import ROUND_HALF_UP, Decimal

from dealdesk.core.config import settings

_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}

_CRORE = Decimal("10000000")
_LAKH = Decimal("100000")
_THOUSAND = Decimal("1000")


def currency_symbol(currency: str | None = None) -> str:
    code = currency or settings.CURRENCY
    return _SYMBOLS.get(code, f"{code} ")


def format_amount(amount: Decimal, currency: str | None = None) -> str:
    """₹50,000 or ₹1,234.50; whole amounts drop the paise."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        body = f"{amount:,.0f}"
    else:
        body = f"{amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,.2f}"
    return f"{currency_symbol(currency)}{body}"


def format_compact(amount: Decimal, currency: str | None = None) -> str:
    """Dashboard style: ₹1.50 Cr, ₹2.25 L, ₹12.5K."""
    amount = Decimal(amount)
    symbol = currency_symbol(currency)
    if amount >= _CRORE:
        return f"{symbol}{amount / _CRORE:.2f} Cr"
    if amount >= _LAKH:
        return f"{symbol}{amount / _LAKH:.2f} L"
    if amount >= _THOUSAND:
        return f"{symbol}{amount / _THOUSAND:.1f}K"
    return format_amount(amount, currency)
