from sqlalchemy import Column, String, Float, Text, BigInteger, Boolean
from .base import UUIDBaseModel


class StockDesign(UUIDBaseModel):
    """Ready-made design sold from the catalogue"""
    __tablename__ = "stock_designs"

    name = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(100))
    price = Column(Float, nullable=False, default=0.0)
    image_url = Column(String(1000))
    is_active = Column(Boolean, default=True)

    # ZIP delivered to buyers; the path is an object key in the stock design file bucket
    attachment_url = Column(String(1000))
    attachment_filename = Column(String(500))
    attachment_size = Column(BigInteger)
