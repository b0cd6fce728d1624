from typing import Any
from fastapi import APIRouter, Depends, Request

from ....core.exceptions import InvalidInput
from ....schemas.invoice import GenerateInvoiceRequest, GenerateInvoiceResponse
from ....services.attachment_service import Caller
from ....services.invoice_service import InvoiceService
from ...deps import get_current_user, get_invoice_service

router = APIRouter()


@router.post("/generate", response_model=GenerateInvoiceResponse)
async def generate_invoice(
    payload: GenerateInvoiceRequest,
    request: Request,
    current_user: Caller = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
) -> Any:
    """Invoice a customer's orders and return the signed payment link (admins only)"""
    origin = request.headers.get("origin")
    return_url = payload.returnUrl or (f"{origin}/payment/success" if origin else None)
    cancel_url = payload.cancelUrl or (f"{origin}/payment/cancelled" if origin else None)
    if not return_url or not cancel_url:
        raise InvalidInput("returnUrl and cancelUrl are required")

    invoice = await service.generate(
        current_user, payload.customerId, payload.orderIds, return_url, cancel_url
    )
    return {
        "success": True,
        "invoice": {
            "id": invoice.id,
            "total_amount": invoice.total_amount,
            "payment_link": invoice.payment_link,
            "order_count": len(invoice.order_ids),
        },
    }
