"""Storefront: Orders API endpoints."""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import PERM_ORDERS_MANAGE, PERM_ORDERS_READ, CurrentUser, get_db, require_permission
from storefront.config import get_settings
from storefront.schemas.common import ApiResponse, Meta
from storefront.schemas.order import OrderCancelRequest, OrderResponse, OrderStatusUpdateRequest
from storefront.services.order_service import OrderService

router = APIRouter()
settings = get_settings()


@router.get("", response_model=ApiResponse[list[OrderResponse]])
async def list_orders(
    status_filter: str | None = Query(None, alias="status"),
    customer_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    user: CurrentUser = Depends(require_permission(PERM_ORDERS_READ)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """List orders for the current tenant, newest first."""
    orders, total = await OrderService.list_orders(
        db, user.tenant_id, user.id, user.role,
        status=status_filter, customer_id=customer_id, page=page, page_size=page_size,
    )
    return ApiResponse(
        data=[OrderResponse.model_validate(o) for o in orders],
        meta=Meta(page=page, page_size=page_size, total_count=total),
    )


@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
async def get_order(
    order_id: UUID,
    user: CurrentUser = Depends(require_permission(PERM_ORDERS_READ)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Get order details including lines and status history."""
    order = await OrderService.get_order(db, user.tenant_id, order_id, user.id, user.role)
    return ApiResponse(data=OrderResponse.model_validate(order))


@router.put("/{order_id}/status", response_model=ApiResponse[OrderResponse])
async def update_order_status(
    order_id: UUID,
    body: OrderStatusUpdateRequest,
    user: CurrentUser = Depends(require_permission(PERM_ORDERS_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    order = await OrderService.update_status(
        db, user.tenant_id, order_id, user.id, user.role, body.status.value, body.notes
    )
    return ApiResponse(data=OrderResponse.model_validate(order), meta=Meta(message=f"Order {order.status}"))


@router.put("/{order_id}/cancel", response_model=ApiResponse[OrderResponse])
async def cancel_order(
    order_id: UUID,
    body: OrderCancelRequest,
    user: CurrentUser = Depends(require_permission(PERM_ORDERS_READ)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Cancel an order. Customers may cancel their own; stock and credit are left untouched."""
    order = await OrderService.cancel(db, user.tenant_id, order_id, user.id, user.role, body.reason)
    return ApiResponse(data=OrderResponse.model_validate(order), meta=Meta(message="Order CANCELLED"))
