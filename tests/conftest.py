"""Shared fixtures: in-memory database, fake object store and an HTTP client."""

from typing import Dict, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from embroidery_api.api.deps import (
    get_order_storage,
    get_product_storage,
    get_stock_file_storage,
    get_stock_image_storage,
)
from embroidery_api.core.security import create_access_token
from embroidery_api.db.database import Base, create_engine_and_sessionmaker, get_db
from embroidery_api.main import app
from embroidery_api.models import Customer, Employee, EmployeeRole, Invoice, Order, StockDesign
from embroidery_api.services.storage_service import StorageConfig


class FakeStorage:
    """In-memory stand-in for ObjectStorage."""

    def __init__(self, bucket: str = "test-bucket"):
        self.config = StorageConfig(
            endpoint="s3.test.local",
            region="test-1",
            bucket_name=bucket,
            access_key_id="",
            secret_access_key="",
        )
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, Optional[str]] = {}
        self.fail_put = False
        self.fail_delete = False
        self.deleted = []

    def put_object(self, key, data, content_type=None):
        if self.fail_put:
            raise RuntimeError("storage unavailable")
        self.objects[key] = data
        self.content_types[key] = content_type

    def delete_object(self, key):
        if self.fail_delete:
            raise RuntimeError("storage unavailable")
        self.objects.pop(key, None)
        self.deleted.append(key)

    def generate_signed_url(self, key, expires_in=3600):
        return f"https://{self.config.endpoint}/{self.config.bucket_name}/{key}?X-Amz-Expires={expires_in}"

    def public_url(self, key):
        return self.config.public_url(key)


@pytest_asyncio.fixture
async def engine():
    engine, _ = create_engine_and_sessionmaker("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def seeded(session_factory):
    """Two customers with orders, staff for every role, an invoice and a stock design."""
    async with session_factory() as session:
        session.add_all([
            Employee(id="admin-1", email="admin@example.com", full_name="Ada Admin", role=EmployeeRole.ADMIN),
            Employee(id="rep-1", email="rep1@example.com", full_name="Sam Rep", role=EmployeeRole.SALES_REP),
            Employee(id="rep-2", email="rep2@example.com", full_name="Kim Rep", role=EmployeeRole.SALES_REP),
            Employee(id="designer-1", email="d1@example.com", full_name="Dee Signer", role=EmployeeRole.DESIGNER),
            Employee(id="designer-2", email="d2@example.com", full_name="Lou Layout", role=EmployeeRole.DESIGNER),
        ])
        await session.flush()
        session.add_all([
            Customer(id="cust-1", email="c1@example.com", company_name="Stitch Co", assigned_sales_rep_id="rep-1"),
            Customer(id="cust-2", email="c2@example.com", company_name="Thread Ltd", assigned_sales_rep_id="rep-2"),
        ])
        await session.flush()
        session.add_all([
            Order(id="O1", order_number="ORD-0001", title="Cap front logo", customer_id="cust-1",
                  assigned_designer_id="designer-1", final_price=100.0),
            Order(id="O2", order_number="ORD-0002", customer_id="cust-2", final_price=80.0),
            Order(id="O3", order_number="ORD-0003", customer_id="cust-1", final_price=49.5),
        ])
        session.add(StockDesign(id="SD1", name="Rose spray", price=12.0))
        session.add(Invoice(id="inv-1", invoice_number="INV-0001", customer_id="cust-1",
                            total_amount=150.0, status="sent", order_ids=["O1"]))
        await session.commit()
    return session_factory


@pytest_asyncio.fixture
async def db(seeded):
    async with seeded() as session:
        yield session


@pytest.fixture
def order_storage():
    return FakeStorage("order-attachment-bucket")


@pytest.fixture
def product_storage():
    return FakeStorage("product-image-bucket")


@pytest.fixture
def stock_file_storage():
    return FakeStorage("stock-design-files")


@pytest.fixture
def stock_image_storage():
    return FakeStorage("stock-design-images")


@pytest_asyncio.fixture
async def client(seeded, order_storage, product_storage, stock_file_storage, stock_image_storage):
    async def override_get_db():
        async with seeded() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_order_storage] = lambda: order_storage
    app.dependency_overrides[get_product_storage] = lambda: product_storage
    app.dependency_overrides[get_stock_file_storage] = lambda: stock_file_storage
    app.dependency_overrides[get_stock_image_storage] = lambda: stock_image_storage

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return _headers
