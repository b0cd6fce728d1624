from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship
from .base import UUIDBaseModel


class Customer(UUIDBaseModel):
    """Customer account; ``id`` is the auth provider's user id"""
    __tablename__ = "customers"

    email = Column(String(255), unique=True, index=True)
    company_name = Column(String(255))
    assigned_sales_rep_id = Column(String, ForeignKey("employees.id"), index=True)

    orders = relationship("Order", back_populates="customer")
