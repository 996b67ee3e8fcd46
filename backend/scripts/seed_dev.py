"""Storefront: seed a dev tenant, staff and customer accounts and a small catalog (run after migrations)."""
import asyncio
import os
import sys
from decimal import Decimal

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from storefront.core.security import create_access_token
from storefront.db.session import async_session_maker
from storefront.models import PaymentTerm, Product, Tenant, User, UserRoleEnum

CATALOG = [
    ("Claw Hammer 16oz", "HAM-16", Decimal("50.00"), 40),
    ("Wood Screws 100pk", "SCR-100", Decimal("25.00"), 200),
    ("PVC Pipe 1/2in x 3m", "PVC-050", Decimal("12.40"), 120),
    ("Portland Cement 50kg", "CEM-50", Decimal("31.90"), 60),
]


async def seed():
    async with async_session_maker() as session:
        existing = await session.scalar(select(Tenant.id).where(Tenant.slug == "dev"))
        if existing:
            print("Dev tenant already exists. Skipping seed.")
            return

        tenant = Tenant(name="Dev Hardware Store", slug="dev")
        session.add(tenant)
        await session.flush()

        admin = User(
            tenant_id=tenant.id, email="admin@dev.local", full_name="Dev Admin", role=UserRoleEnum.ADMIN.value,
        )
        customer = User(
            tenant_id=tenant.id,
            email="buyer@dev.local",
            full_name="Dev Contractor Ltd",
            role=UserRoleEnum.CUSTOMER.value,
            financial_limit=Decimal("5000.00"),
            payment_term=PaymentTerm.NET_30.value,
        )
        session.add_all([admin, customer])
        session.add_all(
            Product(tenant_id=tenant.id, name=name, sku=sku, base_price=price, stock_quantity=stock)
            for name, sku, price, stock in CATALOG
        )
        await session.commit()

        print(f"Seeded tenant {tenant.id} with {len(CATALOG)} products")
        for user in (admin, customer):
            token = create_access_token(user.id, tenant.id, user.role, email=user.email)
            print(f"{user.role:<9} {user.email}: {token}")


if __name__ == "__main__":
    asyncio.run(seed())
