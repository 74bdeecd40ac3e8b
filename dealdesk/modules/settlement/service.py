"""Dual-confirmation payment settlement.

The platform never moves money. The payer pays out of band (UPI), then records
a claim with proof; the claim only reaches the ledger when the payee confirms
receipt. Confirmation is a conditional UPDATE on the claim's status, and the
ledger row, aggregate increment and chat notice commit with it or not at all.

Flow per direction: ``initiate`` (QR/deep link, nothing stored) →
``record_initiator_confirmation`` → ``confirm_receipt``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.core.config import settings
from dealdesk.core.errors import (
    AlreadyCompleted,
    InvalidAttachment,
    MissingPayoutHandle,
    NotAuthorized,
    NotFound,
)
from dealdesk.models.base import utcnow
from dealdesk.models.enums import MessageType, NotificationType, SettlementKind, TransactionStatus
from dealdesk.models.settlement import InvestmentTransaction, ProfitTransaction
from dealdesk.modules.connections.roles import require_role, user_for
from dealdesk.modules.connections.service import deal_link, ensure_active, get_connection, get_user
from dealdesk.modules.ledger import service as ledger
from dealdesk.modules.ledger.formatting import format_amount
from dealdesk.modules.messaging.service import append_message, publish_messages
from dealdesk.modules.notifications.service import notify
from dealdesk.modules.settlement.directions import SettlementDirection, direction_for
from dealdesk.modules.settlement.upi import build_upi_uri
from dealdesk.services import storage

logger = structlog.get_logger()

PROOF_CONTENT_TYPES = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp"})


@dataclass
class PaymentIntent:
    """What the payer's QR screen needs; never persisted."""

    kind: SettlementKind
    connection_id: uuid.UUID
    amount: Decimal
    payee_id: uuid.UUID
    payee_name: str
    payee_handle: str
    note: str
    upi_uri: str


async def _payee_with_handle(db: AsyncSession, payee_id: uuid.UUID):
    payee = await get_user(db, payee_id)
    if not payee.payout_handle:
        raise MissingPayoutHandle(
            "The recipient has not set up a UPI ID yet",
            user_id=str(payee_id),
        )
    return payee


async def initiate(
    db: AsyncSession,
    connection_id: uuid.UUID,
    actor_id: uuid.UUID,
    amount: Decimal,
    kind: SettlementKind = SettlementKind.INVESTMENT,
) -> PaymentIntent:
    """Validate a payment and build the deep link the payer scans."""
    direction = direction_for(kind)
    connection = await get_connection(db, connection_id)
    require_role(connection, actor_id, direction.payer)
    ensure_active(connection)
    amount = ledger.validate_amount(amount)
    payee = await _payee_with_handle(db, user_for(connection, direction.payee))

    return PaymentIntent(
        kind=direction.kind,
        connection_id=connection.id,
        amount=amount,
        payee_id=payee.id,
        payee_name=payee.name,
        payee_handle=payee.payout_handle,
        note=settings.PAYMENT_NOTE,
        upi_uri=build_upi_uri(
            payee.payout_handle,
            payee.name,
            amount,
            settings.PAYMENT_NOTE,
            settings.CURRENCY,
        ),
    )


async def record_initiator_confirmation(
    db: AsyncSession,
    connection_id: uuid.UUID,
    actor_id: uuid.UUID,
    amount: Decimal,
    proof: bytes | None = None,
    proof_content_type: str | None = None,
    description: str | None = None,
    kind: SettlementKind = SettlementKind.INVESTMENT,
) -> InvestmentTransaction | ProfitTransaction:
    """Payer declares the payment sent. The aggregate is not touched."""
    direction = direction_for(kind)
    connection = await get_connection(db, connection_id)
    require_role(connection, actor_id, direction.payer)
    ensure_active(connection)
    amount = ledger.validate_amount(amount)
    payee = await _payee_with_handle(db, user_for(connection, direction.payee))

    proof_url = None
    if proof is not None:
        if proof_content_type not in PROOF_CONTENT_TYPES:
            raise InvalidAttachment("Payment proof must be an image", content_type=proof_content_type)
        if len(proof) > settings.MAX_PROOF_BYTES:
            raise InvalidAttachment("Payment proof is too large", max_bytes=settings.MAX_PROOF_BYTES)
        # Upload before any row exists; a storage failure leaves nothing behind
        key = storage.build_key(f"payment-proofs/{direction.kind.value}", connection_id, proof_content_type)
        proof_url = await storage.put(proof, key, proof_content_type)

    description = description or direction.default_description
    transaction = direction.model(
        connection_id=connection.id,
        idea_id=connection.idea_id,
        payer_id=actor_id,
        payee_id=payee.id,
        amount=amount,
        payee_handle=payee.payout_handle,
        description=description,
        proof_url=proof_url,
        status=TransactionStatus.INITIATOR_CONFIRMED,
        initiator_confirmed_at=utcnow(),
    )
    db.add(transaction)
    await db.flush()

    text = direction.initiated_text.format(amount=format_amount(amount), description=description)
    messages = [await append_message(db, connection_id, actor_id, text)]
    if proof_url:
        messages.append(await append_message(db, connection_id, actor_id, proof_url, MessageType.IMAGE))
    await db.commit()
    await publish_messages(messages)

    logger.info(
        "settlement_initiated",
        kind=direction.kind.value,
        transaction_id=str(transaction.id),
        connection_id=str(connection_id),
        amount=str(amount),
        has_proof=proof_url is not None,
    )
    await notify(
        db,
        payee.id,
        direction.initiated_title,
        f"{format_amount(amount)} sent to you. Please confirm receipt.",
        deal_link(connection_id),
        NotificationType.ACTION_REQUIRED,
    )
    return transaction


async def get_transaction(
    db: AsyncSession, direction: SettlementDirection, transaction_id: uuid.UUID
) -> InvestmentTransaction | ProfitTransaction:
    result = await db.execute(
        select(direction.model)
        .where(direction.model.id == transaction_id, direction.model.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise NotFound("Transaction not found", transaction_id=str(transaction_id))
    return transaction


async def confirm_receipt(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    actor_id: uuid.UUID,
    kind: SettlementKind = SettlementKind.INVESTMENT,
) -> InvestmentTransaction | ProfitTransaction:
    """Payee confirms the money arrived; mints exactly one ledger entry.

    A second confirmation, sequential or concurrent, raises AlreadyCompleted
    and leaves the ledger untouched.
    """
    direction = direction_for(kind)
    transaction = await get_transaction(db, direction, transaction_id)
    connection = await get_connection(db, transaction.connection_id)
    require_role(connection, actor_id, direction.payee)
    if actor_id != transaction.payee_id:
        raise NotAuthorized("Only the payee can confirm receipt", transaction_id=str(transaction_id))
    if transaction.status == TransactionStatus.COMPLETED:
        raise AlreadyCompleted("Payment was already confirmed", transaction_id=str(transaction_id))

    now = utcnow()
    model = direction.model
    result = await db.execute(
        update(model)
        .where(model.id == transaction_id, model.status == TransactionStatus.INITIATOR_CONFIRMED)
        .values(status=TransactionStatus.COMPLETED, payee_confirmed_at=now, completed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.warning("settlement_confirm_race_lost", transaction_id=str(transaction_id))
        raise AlreadyCompleted("Payment was already confirmed", transaction_id=str(transaction_id))

    await direction.mint(
        db,
        connection,
        transaction.amount,
        transaction_id=transaction.id,
        proof_url=transaction.proof_url,
        description=direction.ledger_description(transaction),
    )
    message = await append_message(
        db,
        connection.id,
        actor_id,
        direction.confirmed_text.format(amount=format_amount(transaction.amount)),
    )
    await db.commit()
    transaction = await get_transaction(db, direction, transaction_id)
    await publish_messages([message])

    logger.info(
        "settlement_confirmed",
        kind=direction.kind.value,
        transaction_id=str(transaction_id),
        amount=str(transaction.amount),
    )
    await notify(
        db,
        transaction.payer_id,
        direction.confirmed_title,
        f"{format_amount(transaction.amount)} confirmed as received.",
        deal_link(connection.id),
        NotificationType.PAYMENT,
    )
    return transaction
