from typing import List, Optional
from pydantic import BaseModel


class GenerateInvoiceRequest(BaseModel):
    orderIds: List[str] = []
    customerId: Optional[str] = None
    returnUrl: Optional[str] = None
    cancelUrl: Optional[str] = None


class GeneratedInvoice(BaseModel):
    id: str
    total_amount: float
    payment_link: str
    order_count: int


class GenerateInvoiceResponse(BaseModel):
    success: bool = True
    invoice: GeneratedInvoice
