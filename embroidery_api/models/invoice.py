from sqlalchemy import Column, String, Float, ForeignKey, JSON, DateTime, Text
from .base import UUIDBaseModel


class InvoiceStatus:
    DRAFT = "draft"
    PENDING = "pending"
    SENT = "sent"
    PAID = "paid"


class Invoice(UUIDBaseModel):
    __tablename__ = "invoices"

    invoice_number = Column(String(50), unique=True, index=True)
    customer_id = Column(String, ForeignKey("customers.id"), index=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    currency = Column(String(3), default="USD")
    status = Column(String(20), nullable=False, default=InvoiceStatus.SENT)
    order_ids = Column(JSON, default=list)
    payment_link = Column(Text)
    created_by = Column(String, index=True)

    # 2Checkout transaction fields, filled in by the INS webhook
    tco_reference_number = Column(String(100), unique=True, index=True)
    tco_order_id = Column(String(100))
    tco_payment_method = Column(String(50))
    paid_at = Column(DateTime(timezone=True))
