"""Storefront: OrderService, order reads and status management."""
import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import ForbiddenError, InvalidTransitionError, NotFoundError, ValidationError
from storefront.db.base import utcnow
from storefront.models.order import Order, OrderStatus, OrderStatusHistory
from storefront.models.tenant import STAFF_ROLES
from storefront.services.audit_service import ACTION_ORDER_CANCELLED, ACTION_ORDER_STATUS_UPDATED, log_audit

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value)


class OrderService:
    """Reads orders and moves them through fulfillment. Never touches stock or the credit ledger."""

    @staticmethod
    async def get_by_id(db: AsyncSession, order_id: uuid.UUID, tenant_id: uuid.UUID) -> Order | None:
        """Fetch order with its lines and status history."""
        stmt = (
            select(Order)
            .where(Order.id == order_id, Order.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        res = await db.execute(stmt)
        return res.scalar_one_or_none()

    @staticmethod
    async def get_order(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        order_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: str,
    ) -> Order:
        order = await OrderService.get_by_id(db, order_id, tenant_id)
        if not order:
            raise NotFoundError("Order", order_id)
        if requester_role not in STAFF_ROLES and order.customer_id != requester_id:
            raise ForbiddenError("You do not have access to this order")
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: str,
        *,
        status: str | None = None,
        customer_id: uuid.UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Order], int]:
        """Paginated list, newest first. Customers only see their own orders."""
        filters = [Order.tenant_id == tenant_id]
        if requester_role not in STAFF_ROLES:
            filters.append(Order.customer_id == requester_id)
        elif customer_id:
            filters.append(Order.customer_id == customer_id)
        if status:
            filters.append(Order.status == status)

        total = (await db.execute(select(func.count(Order.id)).where(*filters))).scalar_one()
        q = (
            select(Order)
            .where(*filters)
            .order_by(Order.created_at.desc(), Order.order_number.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await db.execute(q)
        return list(result.scalars().all()), total

    @staticmethod
    async def update_status(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        order_id: uuid.UUID,
        admin_id: uuid.UUID,
        admin_role: str,
        status: str,
        notes: str | None = None,
    ) -> Order:
        """Admin status change. Appends a history row for every change."""
        if admin_role not in STAFF_ROLES:
            raise ForbiddenError("Only admins can update order status")
        if status not in {s.value for s in OrderStatus}:
            raise ValidationError(f"Invalid order status: {status}", field="status")

        order = await OrderService.get_by_id(db, order_id, tenant_id)
        if not order:
            raise NotFoundError("Order", order_id)
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidTransitionError("order", order.status, "update")

        previous = order.status
        order.status = status
        order.updated_at = utcnow()
        db.add(
            OrderStatusHistory(
                order_id=order.id,
                status=status,
                notes=notes or f"Status updated to {status}",
                changed_by=admin_id,
            )
        )
        await log_audit(
            db, tenant_id, admin_id, ACTION_ORDER_STATUS_UPDATED,
            target_type="order", target_id=order.id,
            payload={"from": previous, "to": status},
        )
        await db.flush()
        logger.info("Order %s: %s -> %s", order.order_number, previous, status)
        return await OrderService.get_by_id(db, order.id, tenant_id)

    @staticmethod
    async def cancel(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        order_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: str,
        reason: str | None = None,
    ) -> Order:
        """Cancel an order that has not been delivered. Owner or admin."""
        order = await OrderService.get_by_id(db, order_id, tenant_id)
        if not order:
            raise NotFoundError("Order", order_id)
        if requester_role not in STAFF_ROLES and order.customer_id != requester_id:
            raise ForbiddenError("You do not have permission to cancel this order")
        if order.status in CLOSED_STATUSES:
            raise InvalidTransitionError("order", order.status, "cancel")

        order.status = OrderStatus.CANCELLED.value
        order.updated_at = utcnow()
        db.add(
            OrderStatusHistory(
                order_id=order.id,
                status=OrderStatus.CANCELLED.value,
                notes=reason or "Order cancelled by user",
                changed_by=requester_id,
            )
        )
        await log_audit(
            db, tenant_id, requester_id, ACTION_ORDER_CANCELLED,
            target_type="order", target_id=order.id,
            payload={"reason": reason},
        )
        await db.flush()
        logger.info("Order %s cancelled", order.order_number)
        return await OrderService.get_by_id(db, order.id, tenant_id)
