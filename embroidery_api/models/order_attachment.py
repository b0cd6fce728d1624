from sqlalchemy import Column, String, BigInteger, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .base import UUIDBaseModel


class OrderAttachment(UUIDBaseModel):
    """File stored in the order attachment bucket"""
    __tablename__ = "order_attachments"

    order_id = Column(String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    original_filename = Column(String(500), nullable=False)
    stored_filename = Column(String(600), nullable=False)
    file_size = Column(BigInteger, nullable=False)  # bytes
    mime_type = Column(String(255), nullable=False)
    s3_key = Column(String(1000), nullable=False, unique=True)

    uploaded_by = Column(String, nullable=False, index=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    order = relationship("Order", back_populates="attachments")
