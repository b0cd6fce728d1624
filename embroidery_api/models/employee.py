from sqlalchemy import Column, String, Enum
import enum
from .base import UUIDBaseModel


class EmployeeRole(str, enum.Enum):
    ADMIN = "admin"
    SALES_REP = "sales_rep"
    DESIGNER = "designer"


class Employee(UUIDBaseModel):
    """Staff member; ``id`` is the auth provider's user id"""
    __tablename__ = "employees"

    email = Column(String(255), unique=True, index=True)
    full_name = Column(String(200))
    role = Column(Enum(EmployeeRole, values_callable=lambda e: [m.value for m in e]), nullable=False)
