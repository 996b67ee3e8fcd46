"""Storefront: PricingService, resolves cart lines against the catalog and computes totals."""
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import NotFoundError, ProductUnavailableError, ValidationError
from storefront.models.catalog import Product

CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize to cents. Floats are routed through str() so 0.1 stays 0.1."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    product_id: UUID
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    selected_size: str | None = None
    selected_unit_type: str | None = None


@dataclass(frozen=True)
class PricingResult:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    lines: list[PricedLine] = field(default_factory=list)


class PricingService:
    """Authoritative pricing. Side-effect free apart from the catalog reads."""

    @staticmethod
    def compute_totals(subtotal: Decimal, tax_rate: Decimal) -> tuple[Decimal, Decimal, Decimal]:
        """Return (subtotal, tax, total) with total == subtotal + tax exactly."""
        subtotal = to_money(subtotal)
        tax_amount = to_money(subtotal * Decimal(str(tax_rate)))
        return subtotal, tax_amount, subtotal + tax_amount

    @staticmethod
    def price_line(product: Product, quantity: int, unit_price_override: Decimal | None = None) -> Decimal:
        """Unit price for one line: the override when given, else the catalog base price."""
        if unit_price_override is not None:
            unit_price = to_money(unit_price_override)
            if unit_price < 0:
                raise ValidationError("Unit price cannot be negative", field="unit_price")
            return unit_price
        return to_money(product.base_price)

    @staticmethod
    async def resolve_lines(
        db: AsyncSession,
        tenant_id: UUID,
        lines: list[dict],
        tax_rate: Decimal,
    ) -> PricingResult:
        """
        Resolve each {product_id, quantity, unit_price?} against the catalog.
        - Unknown product -> NotFoundError
        - Inactive product -> ProductUnavailableError
        - quantity <= 0 -> ValidationError
        """
        if not lines:
            raise ValidationError("At least one item is required", field="items")

        product_ids = {UUID(str(line["product_id"])) for line in lines}
        result = await db.execute(
            select(Product).where(Product.id.in_(product_ids), Product.tenant_id == tenant_id)
        )
        products = {p.id: p for p in result.scalars().all()}

        priced: list[PricedLine] = []
        subtotal = Decimal("0")
        for line in lines:
            product_id = UUID(str(line["product_id"]))
            quantity = int(line["quantity"])
            if quantity <= 0:
                raise ValidationError(f"Quantity must be positive, got {quantity}", field="quantity")

            product = products.get(product_id)
            if product is None:
                raise NotFoundError("Product", product_id)
            if not product.is_active:
                raise ProductUnavailableError(product_id, product.name)

            unit_price = PricingService.price_line(product, quantity, line.get("unit_price"))
            line_total = to_money(unit_price * quantity)
            subtotal += line_total
            priced.append(
                PricedLine(
                    product_id=product.id,
                    product_name=product.name,
                    product_sku=product.sku,
                    quantity=quantity,
                    unit_price=unit_price,
                    line_total=line_total,
                    selected_size=line.get("selected_size"),
                    selected_unit_type=line.get("selected_unit_type"),
                )
            )

        subtotal, tax_amount, total_amount = PricingService.compute_totals(subtotal, tax_rate)
        return PricingResult(subtotal=subtotal, tax_amount=tax_amount, total_amount=total_amount, lines=priced)
