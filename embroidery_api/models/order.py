from sqlalchemy import Column, String, Float, ForeignKey
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel


class OrderPaymentStatus:
    UNPAID = "unpaid"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"


class Order(UUIDBaseModel):
    __tablename__ = "orders"

    order_number = Column(String(50), unique=True, index=True)
    title = Column(String(255))
    customer_id = Column(String, ForeignKey("customers.id"), nullable=False, index=True)
    assigned_sales_rep_id = Column(String, ForeignKey("employees.id"), index=True)
    assigned_designer_id = Column(String, ForeignKey("employees.id"), index=True)
    status = Column(String(50), default="pending")

    # Billing
    final_price = Column(Float)
    invoice_id = Column(String, ForeignKey("invoices.id"), index=True)
    payment_status = Column(String(20), nullable=False, default=OrderPaymentStatus.UNPAID)

    # Relationships
    customer = relationship("Customer", back_populates="orders")
    attachments = relationship("OrderAttachment", back_populates="order")
