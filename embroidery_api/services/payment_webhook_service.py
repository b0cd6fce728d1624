import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import UpstreamFailure
from ..models.invoice import Invoice as InvoiceModel, InvoiceStatus
from ..models.order import Order as OrderModel, OrderPaymentStatus
from .attachment_service import rollback_quietly
from .two_checkout_service import HASH_FIELD, PaymentOutcome, classify_payment_status, verify_ins_signature

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = 0.01


@dataclass
class WebhookResult:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


def _ok(message: str, **extra) -> WebhookResult:
    return WebhookResult(status.HTTP_200_OK, {"message": message, **extra})


def _error(status_code: int, message: str) -> WebhookResult:
    return WebhookResult(status_code, {"error": message})


def _parse_amount(raw: Optional[str]) -> Optional[float]:
    """Finite amount or None; "nan" and "inf" parse as floats but never match."""
    try:
        amount = float(raw or "0")
    except ValueError:
        return None
    return amount if math.isfinite(amount) else None


async def _invoice_by(db: AsyncSession, column, value) -> Optional[InvoiceModel]:
    if not value:
        return None
    result = await db.execute(select(InvoiceModel).where(column == value))
    return result.scalar_one_or_none()


async def process_ins_notification(
    db: AsyncSession, payload: Mapping[str, str], secret: Optional[str]
) -> WebhookResult:
    """Apply a 2Checkout Instant Notification to the matching invoice.

    Unsigned or forged notifications are acknowledged with 200 and dropped so
    the provider does not keep retrying them; no payload field is trusted
    before the HASH has been verified.
    """
    if not payload:
        logger.info("Empty INS payload, treating as provider connectivity check")
        return _ok("Endpoint is active and ready")

    if not payload.get(HASH_FIELD):
        logger.error("INS payload missing HASH")
        return _ok("Received but missing signature")

    if not verify_ins_signature(payload, secret):
        logger.error("INS signature verification failed")
        return _ok("Signature verification failed")

    ref_no = payload.get("REFNO")
    order_no = payload.get("ORDERNO")
    outcome = classify_payment_status(payload.get("ORDERSTATUS"))
    merchant_order_id = payload.get("merchant-order-id") or payload.get("MERCHANT_ORDER_ID")

    existing = await _invoice_by(db, InvoiceModel.tco_reference_number, ref_no)
    if existing is not None and existing.status == InvoiceStatus.PAID:
        logger.info(f"INS for REFNO {ref_no} already processed")
        return _ok("Already processed")

    invoice_id = merchant_order_id or (existing.id if existing is not None else None)
    if not invoice_id:
        logger.error(f"No invoice id in INS payload for REFNO {ref_no}")
        return _error(status.HTTP_400_BAD_REQUEST, "Invoice ID not found")

    invoice = await _invoice_by(db, InvoiceModel.id, invoice_id)
    if invoice is None:
        logger.error(f"Invoice {invoice_id} from INS payload not found")
        return _error(status.HTTP_404_NOT_FOUND, "Invoice not found")

    amount = _parse_amount(payload.get("PAYMENTAMOUNT"))
    if amount is None or abs(amount - float(invoice.total_amount or 0)) > AMOUNT_TOLERANCE:
        logger.error(
            f"Payment amount mismatch for invoice {invoice.id}: "
            f"got {payload.get('PAYMENTAMOUNT')}, expected {invoice.total_amount}"
        )
        return _error(status.HTTP_400_BAD_REQUEST, "Amount mismatch")

    if outcome == PaymentOutcome.SUCCESS:
        invoice.status = InvoiceStatus.PAID
        invoice.tco_reference_number = ref_no
        invoice.tco_order_id = order_no
        invoice.tco_payment_method = payload.get("PAYMENTMETHOD")
        invoice.paid_at = datetime.now(timezone.utc)
        try:
            await db.execute(
                update(OrderModel)
                .where(OrderModel.invoice_id == invoice.id)
                .values(payment_status=OrderPaymentStatus.PAID)
            )
            await db.commit()
        except Exception as e:
            logger.error(f"Failed to mark invoice {invoice.id} paid: {e}")
            await rollback_quietly(db)
            raise UpstreamFailure()
        logger.info(f"Payment processed successfully for invoice {invoice.id}")
    else:
        logger.info(f"INS for invoice {invoice.id} with status {payload.get('ORDERSTATUS')} -> {outcome.value}")

    return _ok("Webhook processed successfully", outcome=outcome.value)
