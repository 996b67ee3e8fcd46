"""Storefront: Quotation API endpoints."""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import (
    PERM_QUOTATIONS_READ,
    PERM_QUOTATIONS_REVIEW,
    PERM_QUOTATIONS_WRITE,
    CurrentUser,
    get_db,
    require_permission,
)
from storefront.config import get_settings
from storefront.schemas.common import ApiResponse, Meta
from storefront.schemas.order import OrderResponse
from storefront.schemas.quotation import (
    ApprovalResponse,
    CreditEvaluationResponse,
    ExpirySweepResponse,
    QuotationCreate,
    QuotationDeclineRequest,
    QuotationResponse,
)
from storefront.services.approval_service import ApprovalService
from storefront.services.credit_service import CreditEvaluation
from storefront.services.notification_service import NotificationService
from storefront.services.quotation_service import QuotationService

router = APIRouter()
settings = get_settings()


def _credit_to_response(credit: CreditEvaluation) -> CreditEvaluationResponse:
    return CreditEvaluationResponse(
        level=credit.level.value,
        severity=credit.severity,
        message=credit.message,
        financial_limit=credit.financial_limit,
        current_outstanding=credit.current_outstanding,
        anticipated_outstanding=credit.anticipated_outstanding,
        over_amount=credit.over_amount,
        available_amount=credit.available_amount,
    )


@router.get("", response_model=ApiResponse[list[QuotationResponse]])
async def list_quotations(
    status_filter: str | None = Query(None, alias="status"),
    customer_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_READ)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """List quotations. Customers see their own; admins see all, optionally for one customer."""
    quotations, total = await QuotationService.list_quotations(
        db, user.tenant_id, user.id, user.role,
        status=status_filter, customer_id=customer_id, page=page, page_size=page_size,
    )
    return ApiResponse(
        data=[QuotationResponse.model_validate(q) for q in quotations],
        meta=Meta(page=page, page_size=page_size, total_count=total),
    )


@router.post("", response_model=ApiResponse[QuotationResponse], status_code=status.HTTP_201_CREATED)
async def create_quotation(
    body: QuotationCreate,
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_WRITE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Create a DRAFT quotation from the customer's cart."""
    quotation = await QuotationService.create_draft(
        db,
        tenant_id=user.tenant_id,
        customer_id=user.id,
        items=[item.model_dump() for item in body.items],
        shipping_address=body.shipping_address,
        notes=body.notes,
    )
    return ApiResponse(data=QuotationResponse.model_validate(quotation), meta=Meta(message="Quotation created"))


@router.post("/expire", response_model=ApiResponse[ExpirySweepResponse])
async def expire_quotations(
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_REVIEW)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Expire this tenant's quotations that are past their validity date."""
    count = await QuotationService.expire_stale(db, tenant_id=user.tenant_id)
    return ApiResponse(data=ExpirySweepResponse(expired=count))


@router.get("/{quotation_id}", response_model=ApiResponse[QuotationResponse])
async def get_quotation(
    quotation_id: UUID,
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_READ)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    quotation = await QuotationService.get_quotation(db, user.tenant_id, quotation_id, user.id, user.role)
    return ApiResponse(data=QuotationResponse.model_validate(quotation))


@router.get("/{quotation_id}/credit", response_model=ApiResponse[CreditEvaluationResponse])
async def get_quotation_credit(
    quotation_id: UUID,
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_REVIEW)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Credit alert for the reviewing admin. Advisory; approval is never blocked by it."""
    credit = await QuotationService.credit_review(db, user.tenant_id, quotation_id)
    return ApiResponse(data=_credit_to_response(credit))


@router.post("/{quotation_id}/submit", response_model=ApiResponse[QuotationResponse])
async def submit_quotation(
    quotation_id: UUID,
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_WRITE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    quotation = await QuotationService.submit(db, user.tenant_id, quotation_id, user.id)
    return ApiResponse(
        data=QuotationResponse.model_validate(quotation),
        meta=Meta(message="Quotation submitted for approval"),
    )


@router.put("/{quotation_id}/approve", response_model=ApiResponse[ApprovalResponse])
async def approve_quotation(
    quotation_id: UUID,
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_REVIEW)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Approve and convert to an order in one transaction."""
    result = await ApprovalService.approve(db, user.tenant_id, quotation_id, user.id, user.role)
    quotation = await QuotationService.get_by_id(db, user.tenant_id, quotation_id)
    NotificationService.quotation_approved(quotation, result.order, result.credit)

    message = (
        "Order created - Customer exceeds credit limit"
        if result.credit_warning
        else "Order created successfully"
    )
    return ApiResponse(
        data=ApprovalResponse(
            order=OrderResponse.model_validate(result.order),
            credit_warning=result.credit_warning,
            credit=_credit_to_response(result.credit),
        ),
        meta=Meta(message=message),
    )


@router.put("/{quotation_id}/decline", response_model=ApiResponse[QuotationResponse])
async def decline_quotation(
    quotation_id: UUID,
    body: QuotationDeclineRequest,
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_REVIEW)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    quotation = await QuotationService.decline(db, user.tenant_id, quotation_id, user.id, user.role, body.reason)
    await db.commit()
    NotificationService.quotation_declined(quotation)
    return ApiResponse(data=QuotationResponse.model_validate(quotation), meta=Meta(message="Quotation declined"))


@router.delete("/{quotation_id}", response_model=ApiResponse[None])
async def delete_quotation(
    quotation_id: UUID,
    user: CurrentUser = Depends(require_permission(PERM_QUOTATIONS_WRITE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await QuotationService.delete(db, user.tenant_id, quotation_id, user.id)
    return ApiResponse(meta=Meta(message="Quotation deleted"))
