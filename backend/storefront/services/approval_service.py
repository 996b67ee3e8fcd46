"""
Storefront: ApprovalService, converts an approved quotation into an order.

Everything below happens in one transaction: order + item snapshot, stock
decrements, status history, the guarded quotation transition and the
customer ledger increment. Either all of it commits or none of it does.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    StorefrontError,
    TransactionFailureError,
)
from storefront.db.base import utcnow
from storefront.models.catalog import Product
from storefront.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory, PaymentMethod, PaymentStatus
from storefront.models.quotation import Quotation, QuotationStatus
from storefront.models.tenant import STAFF_ROLES, PaymentTerm, User
from storefront.services.audit_service import ACTION_QUOTATION_APPROVED, log_audit
from storefront.services.credit_service import CreditEvaluation, CreditService
from storefront.services.numbering import order_number
from storefront.services.order_service import OrderService
from storefront.services.quotation_service import QuotationService

logger = logging.getLogger(__name__)

PAYMENT_TERM_DAYS = {
    PaymentTerm.NET_30.value: 30,
    PaymentTerm.NET_60.value: 60,
    PaymentTerm.NET_90.value: 90,
    PaymentTerm.NET_120.value: 120,
}
DEFAULT_PAYMENT_TERM = PaymentTerm.NET_30.value


def calculate_due_date(payment_term: str | None, now: datetime | None = None) -> datetime | None:
    """NET_n terms are due n days out; IMMEDIATE (or no term) has no due date."""
    days = PAYMENT_TERM_DAYS.get(payment_term or "")
    if not days:
        return None
    return (now or utcnow()) + timedelta(days=days)


@dataclass
class ApprovalResult:
    order: Order
    credit: CreditEvaluation

    @property
    def credit_warning(self) -> bool:
        return self.credit.is_warning


class ApprovalService:
    """Orchestrates PENDING_APPROVAL -> CONVERTED_TO_ORDER."""

    @staticmethod
    async def approve(
        db: AsyncSession,
        tenant_id: UUID,
        quotation_id: UUID,
        admin_id: UUID,
        admin_role: str,
    ) -> ApprovalResult:
        """
        Approve and convert. Commits on success; on any failure the session is
        rolled back and the quotation stays PENDING_APPROVAL.

        Credit-limit breaches do not block: the result carries credit_warning.
        """
        if admin_role not in STAFF_ROLES:
            raise ForbiddenError("Only admins can approve quotations")

        try:
            result = await ApprovalService._convert(db, tenant_id, quotation_id, admin_id)
            await db.commit()
        except StorefrontError:
            await db.rollback()
            raise
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Approval of quotation %s aborted: %s", quotation_id, exc, exc_info=True)
            raise TransactionFailureError() from exc

        logger.info(
            "Quotation %s converted to order %s (credit=%s)",
            quotation_id, result.order.order_number, result.credit.level.value,
        )
        return result

    @staticmethod
    async def _convert(
        db: AsyncSession,
        tenant_id: UUID,
        quotation_id: UUID,
        admin_id: UUID,
    ) -> ApprovalResult:
        # 1. Re-read quotation, items and customer inside the transaction.
        quotation = (await db.execute(
            select(Quotation)
            .where(Quotation.id == quotation_id, Quotation.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )).scalar_one_or_none()
        if not quotation:
            raise NotFoundError("Quotation", quotation_id)
        if quotation.status != QuotationStatus.PENDING_APPROVAL.value:
            raise InvalidTransitionError("quotation", quotation.status, "approve")
        if QuotationService.is_past_validity(quotation):
            raise InvalidTransitionError("quotation", QuotationStatus.EXPIRED.value, "approve")

        customer = (await db.execute(
            select(User)
            .where(User.id == quotation.customer_id, User.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )).scalar_one_or_none()
        if not customer:
            raise NotFoundError("Customer", quotation.customer_id)

        credit = CreditService.evaluate_frozen(
            customer.financial_limit,
            customer.current_outstanding,
            quotation.anticipated_outstanding,
        )
        return await ApprovalService.convert_quotation(db, quotation, customer, admin_id, credit)

    @staticmethod
    async def convert_quotation(
        db: AsyncSession,
        quotation: Quotation,
        customer: User,
        admin_id: UUID,
        credit: CreditEvaluation,
    ) -> ApprovalResult:
        """Conversion proper. Does not commit; the caller owns the transaction."""
        now = utcnow()
        payment_term = customer.payment_term or DEFAULT_PAYMENT_TERM
        order_id = uuid.uuid4()

        # Guarded transition first: of two racing approvals only one can claim the row.
        res = await db.execute(
            update(Quotation)
            .where(
                Quotation.id == quotation.id,
                Quotation.status == QuotationStatus.PENDING_APPROVAL.value,
                Quotation.converted_order_id.is_(None),
            )
            .values(
                status=QuotationStatus.CONVERTED_TO_ORDER.value,
                converted_order_id=order_id,
                reviewed_by=admin_id,
                reviewed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            current = await db.scalar(select(Quotation.status).where(Quotation.id == quotation.id))
            raise InvalidTransitionError("quotation", current or quotation.status, "approve")

        # New order with its own copy of the quoted lines (quoted prices, no re-pricing).
        order = Order(
            id=order_id,
            tenant_id=quotation.tenant_id,
            order_number=order_number(),
            customer_id=customer.id,
            customer_name=customer.display_name,
            customer_email=customer.email,
            customer_phone=customer.phone,
            shipping_address=quotation.shipping_address,
            status=OrderStatus.PENDING.value,
            payment_method=PaymentMethod.NET_TERMS.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_term=payment_term,
            due_date=calculate_due_date(payment_term, now),
            subtotal=quotation.subtotal,
            tax_amount=quotation.tax_amount,
            total_amount=quotation.total_amount,
            quotation_id=quotation.id,
            notes=quotation.notes,
        )
        order.items = [
            OrderItem(
                product_id=item.product_id,
                product_name=item.product_name,
                product_sku=item.product_sku,
                selected_size=item.selected_size,
                selected_unit_type=item.selected_unit_type,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in quotation.items
        ]
        order.status_history = [
            OrderStatusHistory(
                status=OrderStatus.PENDING.value,
                notes="Order created from approved quotation",
                changed_by=admin_id,
            )
        ]
        db.add(order)
        await db.flush()

        # Stock decrements, in-SQL. No sufficiency check: stock may go negative.
        for item in quotation.items:
            if item.product_id is None:
                raise NotFoundError("Product", item.product_sku)
            res = await db.execute(
                update(Product)
                .where(Product.id == item.product_id, Product.tenant_id == quotation.tenant_id)
                .values(stock_quantity=Product.stock_quantity - item.quantity, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                raise NotFoundError("Product", item.product_id)

        # Ledger increment by the quoted total (not the frozen anticipated figure), applied by the database.
        res = await db.execute(
            update(User)
            .where(User.id == customer.id)
            .values(
                current_outstanding=User.current_outstanding + quotation.total_amount,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise NotFoundError("Customer", customer.id)

        await log_audit(
            db, quotation.tenant_id, admin_id, ACTION_QUOTATION_APPROVED,
            target_type="quotation", target_id=quotation.id,
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "total_amount": str(quotation.total_amount),
                "credit_level": credit.level.value,
            },
        )
        await db.flush()

        order = await OrderService.get_by_id(db, order.id, quotation.tenant_id)
        return ApprovalResult(order=order, credit=credit)
