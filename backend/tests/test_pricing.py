"""PricingService: line resolution and totals."""
import uuid
from decimal import Decimal

import pytest

from storefront.core.exceptions import NotFoundError, ProductUnavailableError, ValidationError
from storefront.services.pricing_service import PricingService, to_money

TAX = Decimal("0.19")


def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money("2.344") == Decimal("2.34")
    assert to_money(3) == Decimal("3.00")


def test_compute_totals_total_is_exact_sum():
    subtotal, tax, total = PricingService.compute_totals(Decimal("125"), TAX)
    assert subtotal == Decimal("125.00")
    assert tax == Decimal("23.75")
    assert total == Decimal("148.75")
    assert total == subtotal + tax


def test_compute_totals_rounds_tax_to_cents():
    _, tax, total = PricingService.compute_totals(Decimal("10.05"), TAX)
    # 10.05 * 0.19 = 1.9095
    assert tax == Decimal("1.91")
    assert total == Decimal("11.96")


async def test_resolve_lines_uses_catalog_prices(db, tenant, cart):
    result = await PricingService.resolve_lines(db, tenant.id, cart, TAX)

    assert result.subtotal == Decimal("125.00")
    assert result.tax_amount == Decimal("23.75")
    assert result.total_amount == Decimal("148.75")
    assert [line.line_total for line in result.lines] == [Decimal("100.00"), Decimal("25.00")]
    assert result.lines[0].product_sku == "HAM-16"


async def test_resolve_lines_honours_unit_price_override(db, tenant, products):
    lines = [{"product_id": products["hammer"].id, "quantity": 3, "unit_price": Decimal("45.50")}]
    result = await PricingService.resolve_lines(db, tenant.id, lines, TAX)
    assert result.lines[0].unit_price == Decimal("45.50")
    assert result.subtotal == Decimal("136.50")


async def test_resolve_lines_keeps_size_and_unit(db, tenant, products):
    lines = [{
        "product_id": products["screws"].id, "quantity": 1,
        "selected_size": "3/4 in", "selected_unit_type": "box",
    }]
    result = await PricingService.resolve_lines(db, tenant.id, lines, TAX)
    assert result.lines[0].selected_size == "3/4 in"
    assert result.lines[0].selected_unit_type == "box"


async def test_resolve_lines_rejects_empty_cart(db, tenant):
    with pytest.raises(ValidationError):
        await PricingService.resolve_lines(db, tenant.id, [], TAX)


async def test_resolve_lines_rejects_non_positive_quantity(db, tenant, products):
    lines = [{"product_id": products["hammer"].id, "quantity": 0}]
    with pytest.raises(ValidationError) as exc:
        await PricingService.resolve_lines(db, tenant.id, lines, TAX)
    assert exc.value.field == "quantity"


async def test_resolve_lines_unknown_product(db, tenant, products):
    lines = [{"product_id": uuid.uuid4(), "quantity": 1}]
    with pytest.raises(NotFoundError):
        await PricingService.resolve_lines(db, tenant.id, lines, TAX)


async def test_resolve_lines_inactive_product(db, tenant, products):
    lines = [{"product_id": products["retired"].id, "quantity": 1}]
    with pytest.raises(ProductUnavailableError):
        await PricingService.resolve_lines(db, tenant.id, lines, TAX)
