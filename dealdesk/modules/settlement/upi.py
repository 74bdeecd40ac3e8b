"""UPI deep links for the QR shown to the payer."""

from decimal import Decimal
from urllib.parse import quote


def build_upi_uri(
    payee_handle: str,
    payee_name: str,
    amount: Decimal | None = None,
    note: str | None = None,
    currency: str = "INR",
) -> str:
    """``upi://pay`` link any UPI app can open; amount and note are optional."""
    uri = f"upi://pay?pa={payee_handle}&pn={quote(payee_name)}&cu={currency}"
    if amount is not None:
        uri += f"&am={Decimal(amount).quantize(Decimal('0.01'))}"
    if note:
        uri += f"&tn={quote(note)}"
    return uri
