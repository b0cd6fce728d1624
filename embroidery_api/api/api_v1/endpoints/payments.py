import logging
from typing import Any, Dict
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config import settings
from ....core.exceptions import InvalidInput
from ....core.rate_limit import limiter
from ....db.database import get_db
from ....schemas.payment import CheckoutUrlRequest, CheckoutUrlResponse
from ....services.attachment_service import Caller
from ....services.payment_webhook_service import process_ins_notification
from ....services.two_checkout_service import LineItem, PaymentLinkRequest, generate_payment_link
from ...deps import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/checkout-url", response_model=CheckoutUrlResponse)
async def create_checkout_url(
    payload: CheckoutUrlRequest,
    current_user: Caller = Depends(get_current_user),
) -> Any:
    """Signed 2Checkout buy link for an invoice"""
    if not payload.invoiceId:
        raise InvalidInput("invoiceId is required")
    if not payload.products:
        raise InvalidInput("At least one product is required")
    if not payload.returnUrl or not payload.cancelUrl:
        raise InvalidInput("returnUrl and cancelUrl are required")

    link_request = PaymentLinkRequest(
        invoice_id=payload.invoiceId,
        items=[LineItem(name=p.name, price=p.price, quantity=p.quantity) for p in payload.products],
        currency=payload.currency or settings.TCO_DEFAULT_CURRENCY,
        return_url=payload.returnUrl,
        cancel_url=payload.cancelUrl,
    )
    url = generate_payment_link(
        link_request,
        settings.TCO_SELLER_ID,
        settings.TCO_SECRET_WORD,
        checkout_url=settings.TCO_CHECKOUT_URL,
    )
    logger.info(f"User {current_user.id} requested checkout URL for invoice {payload.invoiceId}")
    return {"checkoutUrl": url}


async def _read_webhook_payload(request: Request) -> Dict[str, str]:
    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return {key: str(value) for key, value in form.items()}
    if "application/json" in content_type:
        try:
            data = await request.json()
        except ValueError:
            raise InvalidInput("Malformed JSON payload")
        if not isinstance(data, dict):
            raise InvalidInput("Malformed JSON payload")
        return {key: "" if value is None else str(value) for key, value in data.items()}
    body = (await request.body()).decode("utf-8", errors="replace")
    return dict(parse_qsl(body, keep_blank_values=True))


@router.get("/webhook")
async def webhook_status() -> Any:
    return {"message": "2Checkout IPN endpoint is active", "status": "ready"}


@router.post("/webhook")
@limiter.limit(settings.WEBHOOK_RATE_LIMIT)
async def handle_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """2Checkout Instant Notification receiver"""
    payload = await _read_webhook_payload(request)
    result = await process_ins_notification(db, payload, settings.TCO_INS_SECRET_WORD)
    return JSONResponse(status_code=result.status_code, content=result.body)
