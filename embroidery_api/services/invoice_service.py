import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import InvalidInput, NotFound, UpstreamFailure
from ..models.invoice import Invoice as InvoiceModel, InvoiceStatus
from ..models.order import Order as OrderModel, OrderPaymentStatus
from .access_policy import require_admin
from .attachment_service import Caller, rollback_quietly
from .two_checkout_service import LineItem, PaymentLinkRequest, generate_payment_link

logger = logging.getLogger(__name__)


def _invoice_number(now: datetime) -> str:
    return f"INV-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


class InvoiceService:
    """Bill a customer's orders in one invoice with a signed 2Checkout link."""

    def __init__(
        self,
        db: AsyncSession,
        seller_id: Optional[str],
        secret_word: Optional[str],
        currency: str = "USD",
        checkout_url: str = "https://secure.2checkout.com/checkout/buy",
    ):
        self.db = db
        self.seller_id = seller_id
        self.secret_word = secret_word
        self.currency = currency
        self.checkout_url = checkout_url

    async def generate(
        self,
        caller: Caller,
        customer_id: Optional[str],
        order_ids: List[str],
        return_url: str,
        cancel_url: str,
    ) -> InvoiceModel:
        """Create a pending invoice for ``order_ids`` and link the orders to it.

        The payment link is built before anything is written, so a signing
        failure leaves no invoice behind.
        """
        await require_admin(self.db, caller.id)
        if not order_ids:
            raise InvalidInput("At least one order ID is required")
        if not customer_id:
            raise InvalidInput("customerId is required")

        result = await self.db.execute(
            select(OrderModel)
            .where(OrderModel.id.in_(order_ids), OrderModel.customer_id == customer_id)
            .order_by(OrderModel.order_number)
        )
        orders = list(result.scalars().all())
        if not orders:
            raise NotFound("Orders not found or invalid customer")

        now = datetime.now(timezone.utc)
        invoice = InvoiceModel(
            id=str(uuid.uuid4()),
            invoice_number=_invoice_number(now),
            customer_id=customer_id,
            order_ids=[order.id for order in orders],
            total_amount=round(sum(order.final_price or 0 for order in orders), 2),
            currency=self.currency,
            status=InvoiceStatus.PENDING,
            created_by=caller.id,
        )
        items = [
            LineItem(name=order.title or order.order_number or order.id, price=order.final_price or 0)
            for order in orders
        ]
        invoice.payment_link = generate_payment_link(
            PaymentLinkRequest(
                invoice_id=invoice.id,
                items=items,
                currency=self.currency,
                return_url=return_url,
                cancel_url=cancel_url,
            ),
            self.seller_id,
            self.secret_word,
            checkout_url=self.checkout_url,
        )

        self.db.add(invoice)
        for order in orders:
            order.invoice_id = invoice.id
            order.payment_status = OrderPaymentStatus.PENDING_PAYMENT
        try:
            await self.db.commit()
        except Exception as e:
            logger.error(f"Failed to create invoice for customer {customer_id}: {e}")
            await rollback_quietly(self.db)
            raise UpstreamFailure()

        logger.info(
            f"Admin {caller.id} generated invoice {invoice.id} for {len(orders)} order(s), "
            f"total {invoice.total_amount:.2f} {invoice.currency}"
        )
        return invoice
