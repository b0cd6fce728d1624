"""Decide what a caller may do with the attachments of one order.

The decision is recomputed on every request. Missing employee, customer or
order rows fold into a denial so callers cannot tell "does not exist" apart
from "exists but not yours".
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import Forbidden
from ..models.customer import Customer as CustomerModel
from ..models.employee import Employee as EmployeeModel
from ..models.order import Order as OrderModel

logger = logging.getLogger(__name__)


class CallerRole(str, enum.Enum):
    ADMIN = "admin"
    SALES_REP = "sales_rep"
    DESIGNER = "designer"
    CUSTOMER = "customer"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class OrderRelations:
    order_id: str
    customer_id: str
    customer_sales_rep_id: Optional[str]
    assigned_designer_id: Optional[str]


@dataclass(frozen=True)
class AccessDecision:
    can_view: bool
    can_upload: bool
    can_delete: bool
    user_id: str
    role: CallerRole

    @classmethod
    def deny(cls, user_id: str, role: CallerRole) -> "AccessDecision":
        return cls(False, False, False, user_id, role)


Resolver = Callable[[str, Optional[OrderRelations]], AccessDecision]


def _admin(user_id: str, relations: Optional[OrderRelations]) -> AccessDecision:
    return AccessDecision(True, True, True, user_id, CallerRole.ADMIN)


def _contributor(role: CallerRole, allowed: bool, user_id: str) -> AccessDecision:
    if not allowed:
        return AccessDecision.deny(user_id, role)
    return AccessDecision(True, True, False, user_id, role)


def _sales_rep(user_id: str, relations: Optional[OrderRelations]) -> AccessDecision:
    allowed = relations is not None and relations.customer_sales_rep_id == user_id
    return _contributor(CallerRole.SALES_REP, allowed, user_id)


def _designer(user_id: str, relations: Optional[OrderRelations]) -> AccessDecision:
    allowed = relations is not None and relations.assigned_designer_id == user_id
    return _contributor(CallerRole.DESIGNER, allowed, user_id)


def _customer(user_id: str, relations: Optional[OrderRelations]) -> AccessDecision:
    allowed = relations is not None and relations.customer_id == user_id
    return _contributor(CallerRole.CUSTOMER, allowed, user_id)


def _unknown(user_id: str, relations: Optional[OrderRelations]) -> AccessDecision:
    return AccessDecision.deny(user_id, CallerRole.UNKNOWN)


RESOLVERS: Dict[CallerRole, Resolver] = {
    CallerRole.ADMIN: _admin,
    CallerRole.SALES_REP: _sales_rep,
    CallerRole.DESIGNER: _designer,
    CallerRole.CUSTOMER: _customer,
    CallerRole.UNKNOWN: _unknown,
}


def decide_access(
    role: CallerRole, user_id: str, relations: Optional[OrderRelations]
) -> AccessDecision:
    return RESOLVERS.get(role, _unknown)(user_id, relations)


async def resolve_caller_role(db: AsyncSession, user_id: str) -> CallerRole:
    try:
        result = await db.execute(select(EmployeeModel.role).where(EmployeeModel.id == user_id))
        employee_role = result.scalar_one_or_none()
    except LookupError:
        # role column holds a value outside EmployeeRole
        logger.warning(f"Employee {user_id} has an unrecognised role, denying access")
        return CallerRole.UNKNOWN
    if employee_role is not None:
        return CallerRole(employee_role.value)

    result = await db.execute(select(CustomerModel.id).where(CustomerModel.id == user_id))
    if result.scalar_one_or_none() is not None:
        return CallerRole.CUSTOMER
    return CallerRole.UNKNOWN


async def require_admin(db: AsyncSession, user_id: str) -> None:
    """Raise Forbidden unless ``user_id`` is an admin employee."""
    if await resolve_caller_role(db, user_id) != CallerRole.ADMIN:
        raise Forbidden("Admin access required")


async def load_order_relations(db: AsyncSession, order_id: str) -> Optional[OrderRelations]:
    result = await db.execute(
        select(
            OrderModel.id,
            OrderModel.customer_id,
            CustomerModel.assigned_sales_rep_id,
            OrderModel.assigned_designer_id,
        )
        .outerjoin(CustomerModel, CustomerModel.id == OrderModel.customer_id)
        .where(OrderModel.id == order_id)
    )
    row = result.first()
    if row is None:
        return None
    return OrderRelations(
        order_id=row[0],
        customer_id=row[1],
        customer_sales_rep_id=row[2],
        assigned_designer_id=row[3],
    )


async def resolve_attachment_access(db: AsyncSession, user_id: str, order_id: str) -> AccessDecision:
    """Access decision for ``user_id`` on the attachments of ``order_id``."""
    role = await resolve_caller_role(db, user_id)
    if role in (CallerRole.ADMIN, CallerRole.UNKNOWN):
        return decide_access(role, user_id, None)

    relations = await load_order_relations(db, order_id) if order_id else None
    return decide_access(role, user_id, relations)
