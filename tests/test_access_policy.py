"""Tests for the order attachment access policy."""

import pytest
from sqlalchemy import select, text

from embroidery_api.core.exceptions import Forbidden
from embroidery_api.models import Customer, Order
from embroidery_api.services.access_policy import (
    AccessDecision,
    CallerRole,
    OrderRelations,
    decide_access,
    load_order_relations,
    require_admin,
    resolve_attachment_access,
    resolve_caller_role,
)

RELATIONS = OrderRelations(
    order_id="O1",
    customer_id="cust-1",
    customer_sales_rep_id="rep-1",
    assigned_designer_id="designer-1",
)


def _flags(decision: AccessDecision):
    return decision.can_view, decision.can_upload, decision.can_delete


@pytest.mark.parametrize(
    "role,user_id,relations,expected",
    [
        (CallerRole.ADMIN, "admin-1", RELATIONS, (True, True, True)),
        (CallerRole.ADMIN, "admin-1", None, (True, True, True)),
        (CallerRole.SALES_REP, "rep-1", RELATIONS, (True, True, False)),
        (CallerRole.SALES_REP, "rep-2", RELATIONS, (False, False, False)),
        (CallerRole.SALES_REP, "rep-1", None, (False, False, False)),
        (CallerRole.DESIGNER, "designer-1", RELATIONS, (True, True, False)),
        (CallerRole.DESIGNER, "designer-2", RELATIONS, (False, False, False)),
        (CallerRole.DESIGNER, "designer-1", None, (False, False, False)),
        (CallerRole.CUSTOMER, "cust-1", RELATIONS, (True, True, False)),
        (CallerRole.CUSTOMER, "cust-2", RELATIONS, (False, False, False)),
        (CallerRole.CUSTOMER, "cust-1", None, (False, False, False)),
        (CallerRole.UNKNOWN, "stranger", RELATIONS, (False, False, False)),
    ],
)
def test_decide_access_allow_list(role, user_id, relations, expected):
    decision = decide_access(role, user_id, relations)
    assert _flags(decision) == expected
    assert decision.role == role
    assert decision.user_id == user_id


def test_sales_rep_is_not_matched_by_designer_field():
    relations = OrderRelations("O9", "cust-9", customer_sales_rep_id=None, assigned_designer_id="rep-1")
    assert _flags(decide_access(CallerRole.SALES_REP, "rep-1", relations)) == (False, False, False)


def test_unassigned_order_denies_everyone_but_admin_and_owner():
    relations = OrderRelations("O2", "cust-2", customer_sales_rep_id=None, assigned_designer_id=None)
    assert _flags(decide_access(CallerRole.DESIGNER, "designer-1", relations)) == (False, False, False)
    assert _flags(decide_access(CallerRole.SALES_REP, "rep-1", relations)) == (False, False, False)
    assert _flags(decide_access(CallerRole.CUSTOMER, "cust-2", relations)) == (True, True, False)


@pytest.mark.asyncio
async def test_resolve_caller_role(db):
    assert await resolve_caller_role(db, "admin-1") == CallerRole.ADMIN
    assert await resolve_caller_role(db, "rep-1") == CallerRole.SALES_REP
    assert await resolve_caller_role(db, "designer-2") == CallerRole.DESIGNER
    assert await resolve_caller_role(db, "cust-1") == CallerRole.CUSTOMER
    assert await resolve_caller_role(db, "nobody") == CallerRole.UNKNOWN


@pytest.mark.asyncio
async def test_load_order_relations_joins_customer_sales_rep(db):
    relations = await load_order_relations(db, "O1")
    assert relations == RELATIONS
    assert await load_order_relations(db, "missing") is None


@pytest.mark.asyncio
async def test_designer_gains_access_once_assigned(db):
    before = await resolve_attachment_access(db, "designer-2", "O2")
    assert _flags(before) == (False, False, False)

    order = (await db.execute(select(Order).where(Order.id == "O2"))).scalar_one()
    order.assigned_designer_id = "designer-2"
    await db.commit()

    after = await resolve_attachment_access(db, "designer-2", "O2")
    assert _flags(after) == (True, True, False)


@pytest.mark.asyncio
async def test_sales_rep_access_follows_customer_assignment(db):
    assert _flags(await resolve_attachment_access(db, "rep-2", "O1")) == (False, False, False)

    customer = (await db.execute(select(Customer).where(Customer.id == "cust-1"))).scalar_one()
    customer.assigned_sales_rep_id = "rep-2"
    await db.commit()

    assert _flags(await resolve_attachment_access(db, "rep-2", "O1")) == (True, True, False)
    assert _flags(await resolve_attachment_access(db, "rep-1", "O1")) == (False, False, False)


@pytest.mark.asyncio
async def test_admin_access_does_not_depend_on_order(db):
    decision = await resolve_attachment_access(db, "admin-1", "does-not-exist")
    assert _flags(decision) == (True, True, True)


@pytest.mark.asyncio
async def test_missing_records_fold_into_denial(db):
    assert _flags(await resolve_attachment_access(db, "designer-1", "does-not-exist")) == (False, False, False)
    assert _flags(await resolve_attachment_access(db, "cust-1", "does-not-exist")) == (False, False, False)
    unknown = await resolve_attachment_access(db, "nobody", "O1")
    assert _flags(unknown) == (False, False, False)
    assert unknown.role == CallerRole.UNKNOWN


@pytest.mark.asyncio
async def test_unrecognised_employee_role_is_denied(db):
    await db.execute(text(
        "INSERT INTO employees (id, email, full_name, role) "
        "VALUES ('intern-1', 'intern@example.com', 'Ira Intern', 'intern')"
    ))
    await db.commit()

    assert await resolve_caller_role(db, "intern-1") == CallerRole.UNKNOWN
    decision = await resolve_attachment_access(db, "intern-1", "O1")
    assert (decision.can_view, decision.can_upload, decision.can_delete) == (False, False, False)


@pytest.mark.asyncio
async def test_require_admin(db):
    await require_admin(db, "admin-1")
    for user_id in ("rep-1", "designer-1", "cust-1", "nobody"):
        with pytest.raises(Forbidden):
            await require_admin(db, user_id)
