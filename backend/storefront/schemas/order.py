"""Storefront: Order schemas."""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.order import OrderStatus


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID | None
    product_name: str
    product_sku: str
    selected_size: str | None = None
    selected_unit_type: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderStatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    notes: str | None
    changed_by: UUID | None
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    customer_id: UUID
    customer_name: str
    customer_email: str
    shipping_address: str | None
    status: str
    payment_method: str
    payment_status: str
    payment_term: str | None
    due_date: datetime | None
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    quotation_id: UUID | None
    notes: str | None
    created_at: datetime

    items: list[OrderItemResponse] = []
    status_history: list[OrderStatusHistoryResponse] = []


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus
    notes: str | None = Field(default=None, max_length=1000)


class OrderCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)
