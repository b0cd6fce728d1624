from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func
from ..db.database import Base
import uuid


class UUIDBaseModel(Base):
    """Base model with UUID primary key"""
    __abstract__ = True

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
