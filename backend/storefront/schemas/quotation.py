"""Storefront: Quotation schemas."""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.order import OrderResponse

# --- Items ---

class QuotationItemCreate(BaseModel):
    product_id: UUID
    quantity: int = Field(..., gt=0)
    unit_price: Decimal | None = Field(default=None, ge=0)
    selected_size: str | None = Field(default=None, max_length=100)
    selected_unit_type: str | None = Field(default=None, max_length=50)


class QuotationItemResponse(BaseModel):
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


# --- Quotations ---

class QuotationCreate(BaseModel):
    items: list[QuotationItemCreate] = Field(..., min_length=1)
    shipping_address: str | None = None
    notes: str | None = Field(default=None, max_length=2000)


class QuotationDeclineRequest(BaseModel):
    reason: str = Field(..., max_length=2000)


class QuotationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quotation_number: str
    customer_id: UUID
    status: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    anticipated_outstanding: Decimal
    shipping_address: str | None
    notes: str | None
    valid_until: datetime | None
    submitted_at: datetime | None
    reviewed_by: UUID | None
    reviewed_at: datetime | None
    decline_reason: str | None
    converted_order_id: UUID | None
    created_at: datetime

    items: list[QuotationItemResponse] = []


# --- Credit ---

class CreditEvaluationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    level: str
    severity: str
    message: str
    financial_limit: Decimal
    current_outstanding: Decimal
    anticipated_outstanding: Decimal
    over_amount: Decimal
    available_amount: Decimal


class ApprovalResponse(BaseModel):
    order: OrderResponse
    credit_warning: bool
    credit: CreditEvaluationResponse


class ExpirySweepResponse(BaseModel):
    expired: int
