"""Shared fixtures: in-memory SQLite database, one tenant, a customer, an admin and a small catalog."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import storefront.models  # noqa: F401  registers every table on Base.metadata
from storefront.db.base import Base
from storefront.models.catalog import Product
from storefront.models.tenant import PaymentTerm, Tenant, User, UserRoleEnum
from storefront.services.approval_service import ApprovalService
from storefront.services.quotation_service import QuotationService


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def tenant(db):
    tenant = Tenant(id=uuid.uuid4(), name="Ferreteria Central", slug="ferreteria-central")
    db.add(tenant)
    await db.commit()
    return tenant


@pytest.fixture
async def customer(db, tenant):
    user = User(
        id=uuid.uuid4(),
        tenant_id=tenant.id,
        email="buyer@constructora.example",
        full_name="Constructora Norte",
        phone="+57 300 000 0000",
        role=UserRoleEnum.CUSTOMER.value,
        financial_limit=Decimal("1000.00"),
        current_outstanding=Decimal("800.00"),
        payment_term=PaymentTerm.NET_60.value,
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def other_customer(db, tenant):
    user = User(
        id=uuid.uuid4(),
        tenant_id=tenant.id,
        email="other@example.com",
        role=UserRoleEnum.CUSTOMER.value,
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def admin(db, tenant):
    user = User(
        id=uuid.uuid4(),
        tenant_id=tenant.id,
        email="admin@ferreteria.example",
        full_name="Store Admin",
        role=UserRoleEnum.ADMIN.value,
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def products(db, tenant):
    """Two active products (hammer 50.00, screws 25.00) and one inactive."""
    hammer = Product(
        id=uuid.uuid4(), tenant_id=tenant.id, name="Claw Hammer", sku="HAM-16",
        base_price=Decimal("50.00"), stock_quantity=10,
    )
    screws = Product(
        id=uuid.uuid4(), tenant_id=tenant.id, name="Wood Screws 100pk", sku="SCR-100",
        base_price=Decimal("25.00"), stock_quantity=40,
    )
    retired = Product(
        id=uuid.uuid4(), tenant_id=tenant.id, name="Old Saw", sku="SAW-OLD",
        base_price=Decimal("10.00"), stock_quantity=3, is_active=False,
    )
    db.add_all([hammer, screws, retired])
    await db.commit()
    return {"hammer": hammer, "screws": screws, "retired": retired}


@pytest.fixture
def cart(products):
    """2 x hammer + 1 x screws: subtotal 125.00, tax 23.75, total 148.75."""
    return [
        {"product_id": products["hammer"].id, "quantity": 2},
        {"product_id": products["screws"].id, "quantity": 1},
    ]


@pytest.fixture
async def pending_quotation(db, tenant, customer, cart):
    quotation = await QuotationService.create_draft(db, tenant.id, customer.id, cart)
    quotation = await QuotationService.submit(db, tenant.id, quotation.id, customer.id)
    await db.commit()
    return quotation


@pytest.fixture
async def order(db, tenant, admin, pending_quotation):
    result = await ApprovalService.approve(db, tenant.id, pending_quotation.id, admin.id, admin.role)
    return result.order
