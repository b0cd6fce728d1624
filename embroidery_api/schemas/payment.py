from typing import List, Optional
from pydantic import BaseModel, Field


class PaymentProduct(BaseModel):
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)


class CheckoutUrlRequest(BaseModel):
    invoiceId: str
    products: List[PaymentProduct] = []
    returnUrl: str
    cancelUrl: str
    currency: Optional[str] = None


class CheckoutUrlResponse(BaseModel):
    checkoutUrl: str
