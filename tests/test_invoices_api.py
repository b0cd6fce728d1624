"""HTTP tests for /api/v1/invoices/generate."""

from urllib.parse import parse_qsl, urlsplit

import pytest
from sqlalchemy import select

from embroidery_api.core.config import settings
from embroidery_api.models import Invoice, Order
from embroidery_api.services.two_checkout_service import verify_payment_link_signature

URL = "/api/v1/invoices/generate"
RETURN_URLS = {"returnUrl": "https://shop.example.com/paid", "cancelUrl": "https://shop.example.com/cancelled"}


@pytest.fixture
def tco_settings(monkeypatch):
    monkeypatch.setattr(settings, "TCO_SELLER_ID", "255036765830")
    monkeypatch.setattr(settings, "TCO_SECRET_WORD", "buy-link-secret")


async def _orders(seeded, *order_ids):
    async with seeded() as session:
        result = await session.execute(select(Order).where(Order.id.in_(order_ids)).order_by(Order.id))
        return list(result.scalars().all())


async def _invoices(seeded):
    async with seeded() as session:
        return list((await session.execute(select(Invoice).order_by(Invoice.invoice_number))).scalars().all())


@pytest.mark.asyncio
async def test_admin_invoices_customer_orders(client, seeded, auth_headers, tco_settings):
    response = await client.post(
        URL,
        headers=auth_headers("admin-1"),
        json={"orderIds": ["O1", "O3"], "customerId": "cust-1", **RETURN_URLS},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    invoice = body["invoice"]
    assert invoice["total_amount"] == 149.5
    assert invoice["order_count"] == 2

    params = dict(parse_qsl(urlsplit(invoice["payment_link"]).query))
    assert params["merchant-order-id"] == invoice["id"]
    assert params["prod"] == "Cap front logo"
    assert params["prod1"] == "ORD-0003"
    assert params["price1"] == "49.50"
    assert params["return-url"] == RETURN_URLS["returnUrl"]
    assert verify_payment_link_signature(params, "buy-link-secret")

    for order in await _orders(seeded, "O1", "O3"):
        assert order.invoice_id == invoice["id"]
        assert order.payment_status == "pending_payment"

    stored = [i for i in await _invoices(seeded) if i.id == invoice["id"]]
    assert len(stored) == 1
    assert stored[0].status == "pending"
    assert stored[0].created_by == "admin-1"
    assert stored[0].invoice_number.startswith("INV-")
    assert sorted(stored[0].order_ids) == ["O1", "O3"]


@pytest.mark.asyncio
async def test_origin_header_supplies_default_urls(client, auth_headers, tco_settings):
    response = await client.post(
        URL,
        headers={**auth_headers("admin-1"), "Origin": "https://shop.example.com"},
        json={"orderIds": ["O1"], "customerId": "cust-1"},
    )
    assert response.status_code == 200
    params = dict(parse_qsl(urlsplit(response.json()["invoice"]["payment_link"]).query))
    assert params["return-url"] == "https://shop.example.com/payment/success"
    assert params["cancel-url"] == "https://shop.example.com/payment/cancelled"


@pytest.mark.asyncio
async def test_missing_urls_without_origin_is_400(client, auth_headers, tco_settings):
    response = await client.post(
        URL, headers=auth_headers("admin-1"), json={"orderIds": ["O1"], "customerId": "cust-1"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "returnUrl and cancelUrl are required"}


@pytest.mark.asyncio
async def test_only_admins_generate_invoices(client, seeded, auth_headers, tco_settings):
    response = await client.post(
        URL,
        headers=auth_headers("rep-1"),
        json={"orderIds": ["O1"], "customerId": "cust-1", **RETURN_URLS},
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}
    assert [i.id for i in await _invoices(seeded)] == ["inv-1"]


@pytest.mark.asyncio
async def test_orders_of_another_customer_are_404(client, seeded, auth_headers, tco_settings):
    response = await client.post(
        URL,
        headers=auth_headers("admin-1"),
        json={"orderIds": ["O2"], "customerId": "cust-1", **RETURN_URLS},
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Orders not found or invalid customer"}
    [order] = await _orders(seeded, "O2")
    assert order.invoice_id is None


@pytest.mark.asyncio
async def test_empty_order_list_is_400(client, auth_headers, tco_settings):
    response = await client.post(
        URL, headers=auth_headers("admin-1"), json={"orderIds": [], "customerId": "cust-1", **RETURN_URLS}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "At least one order ID is required"}


@pytest.mark.asyncio
async def test_unconfigured_credentials_write_nothing(client, seeded, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "TCO_SELLER_ID", None)
    monkeypatch.setattr(settings, "TCO_SECRET_WORD", None)

    response = await client.post(
        URL,
        headers=auth_headers("admin-1"),
        json={"orderIds": ["O1"], "customerId": "cust-1", **RETURN_URLS},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "2Checkout credentials not configured"}
    assert [i.id for i in await _invoices(seeded)] == ["inv-1"]
    [order] = await _orders(seeded, "O1")
    assert order.invoice_id is None
    assert order.payment_status == "unpaid"
