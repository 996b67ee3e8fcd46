"""Storefront: QuotationService, the quotation lifecycle (create, submit, decline, delete, expire, list)."""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import get_settings
from storefront.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from storefront.db.base import ensure_aware, utcnow
from storefront.models.quotation import Quotation, QuotationItem, QuotationStatus
from storefront.models.tenant import STAFF_ROLES, User, UserRoleEnum
from storefront.services.audit_service import (
    ACTION_QUOTATION_CREATED,
    ACTION_QUOTATION_DECLINED,
    ACTION_QUOTATION_DELETED,
    ACTION_QUOTATION_EXPIRED,
    ACTION_QUOTATION_SUBMITTED,
    log_audit,
)
from storefront.services.credit_service import CreditEvaluation, CreditService
from storefront.services.numbering import quotation_number
from storefront.services.pricing_service import PricingService

logger = logging.getLogger(__name__)

EXPIRABLE_STATUSES = (QuotationStatus.DRAFT.value, QuotationStatus.PENDING_APPROVAL.value)


class QuotationService:
    """State machine for a single quotation: DRAFT -> PENDING_APPROVAL -> {CONVERTED_TO_ORDER, DECLINED, EXPIRED}."""

    @staticmethod
    async def get_by_id(db: AsyncSession, tenant_id: UUID, quotation_id: UUID) -> Quotation | None:
        """Fetch quotation with its items, overwriting any stale in-session copy."""
        res = await db.execute(
            select(Quotation)
            .where(Quotation.id == quotation_id, Quotation.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    @staticmethod
    async def _require(db: AsyncSession, tenant_id: UUID, quotation_id: UUID) -> Quotation:
        quotation = await QuotationService.get_by_id(db, tenant_id, quotation_id)
        if not quotation:
            raise NotFoundError("Quotation", quotation_id)
        return quotation

    @staticmethod
    async def _get_customer(db: AsyncSession, tenant_id: UUID, customer_id: UUID) -> User:
        res = await db.execute(
            select(User)
            .where(User.id == customer_id, User.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        customer = res.scalar_one_or_none()
        if not customer or customer.role != UserRoleEnum.CUSTOMER.value:
            raise NotFoundError("Customer", customer_id)
        return customer

    @staticmethod
    async def _transition(
        db: AsyncSession,
        quotation: Quotation,
        from_status: str,
        action: str,
        **values,
    ) -> Quotation:
        """
        Conditional status update: UPDATE ... WHERE status = :from_status.
        Exactly one row must change, otherwise someone else moved it first.
        """
        res = await db.execute(
            update(Quotation)
            .where(Quotation.id == quotation.id, Quotation.status == from_status)
            .values(updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            current = await db.scalar(select(Quotation.status).where(Quotation.id == quotation.id))
            raise InvalidTransitionError("quotation", current or quotation.status, action)
        return await QuotationService._require(db, quotation.tenant_id, quotation.id)

    @staticmethod
    def is_past_validity(quotation: Quotation, now: datetime | None = None) -> bool:
        valid_until = ensure_aware(quotation.valid_until)
        return (
            quotation.status in EXPIRABLE_STATUSES
            and valid_until is not None
            and valid_until < (now or utcnow())
        )

    # ── Create ────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_draft(
        db: AsyncSession,
        tenant_id: UUID,
        customer_id: UUID,
        items: list[dict],
        shipping_address: str | None = None,
        notes: str | None = None,
    ) -> Quotation:
        """Price the cart against the catalog and store it as a DRAFT with snapshotted lines."""
        settings = get_settings()
        if not items:
            raise ValidationError("At least one item is required", field="items")

        customer = await QuotationService._get_customer(db, tenant_id, customer_id)
        pricing = await PricingService.resolve_lines(db, tenant_id, items, settings.TAX_RATE)

        quotation = Quotation(
            tenant_id=tenant_id,
            quotation_number=quotation_number(),
            customer_id=customer.id,
            status=QuotationStatus.DRAFT.value,
            subtotal=pricing.subtotal,
            tax_amount=pricing.tax_amount,
            total_amount=pricing.total_amount,
            # Preview only; frozen for real at submission.
            anticipated_outstanding=CreditService.anticipated_outstanding(
                customer.current_outstanding, pricing.total_amount
            ),
            shipping_address=shipping_address,
            notes=notes,
            valid_until=utcnow() + timedelta(days=settings.QUOTATION_VALIDITY_DAYS),
        )
        quotation.items = [
            QuotationItem(
                position=position,
                product_id=line.product_id,
                product_name=line.product_name,
                product_sku=line.product_sku,
                selected_size=line.selected_size,
                selected_unit_type=line.selected_unit_type,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for position, line in enumerate(pricing.lines)
        ]
        db.add(quotation)
        await db.flush()

        await log_audit(
            db, tenant_id, customer.id, ACTION_QUOTATION_CREATED,
            target_type="quotation", target_id=quotation.id,
            payload={"quotation_number": quotation.quotation_number, "total_amount": str(quotation.total_amount)},
        )
        logger.info(
            "Quotation %s drafted for customer %s: total=%s",
            quotation.quotation_number, customer.id, quotation.total_amount,
        )
        return await QuotationService._require(db, tenant_id, quotation.id)

    # ── Transitions ───────────────────────────────────────────────────────────

    @staticmethod
    async def submit(
        db: AsyncSession,
        tenant_id: UUID,
        quotation_id: UUID,
        requester_id: UUID,
    ) -> Quotation:
        """DRAFT -> PENDING_APPROVAL. Freezes anticipated_outstanding from the live ledger."""
        quotation = await QuotationService._require(db, tenant_id, quotation_id)
        if quotation.customer_id != requester_id:
            raise ForbiddenError("Only the quotation owner can submit it")
        if quotation.status != QuotationStatus.DRAFT.value:
            raise InvalidTransitionError("quotation", quotation.status, "submit")
        if QuotationService.is_past_validity(quotation):
            await QuotationService._mark_expired(db, quotation, actor_id=requester_id)
            raise InvalidTransitionError("quotation", QuotationStatus.EXPIRED.value, "submit")

        current_outstanding = await db.scalar(
            select(User.current_outstanding).where(User.id == quotation.customer_id)
        )
        anticipated = CreditService.anticipated_outstanding(
            current_outstanding or Decimal("0"), quotation.total_amount
        )
        quotation = await QuotationService._transition(
            db, quotation, QuotationStatus.DRAFT.value, "submit",
            status=QuotationStatus.PENDING_APPROVAL.value,
            anticipated_outstanding=anticipated,
            submitted_at=utcnow(),
        )
        await log_audit(
            db, tenant_id, requester_id, ACTION_QUOTATION_SUBMITTED,
            target_type="quotation", target_id=quotation.id,
            payload={"anticipated_outstanding": str(anticipated)},
        )
        logger.info("Quotation %s submitted for approval", quotation.quotation_number)
        return quotation

    @staticmethod
    async def decline(
        db: AsyncSession,
        tenant_id: UUID,
        quotation_id: UUID,
        admin_id: UUID,
        admin_role: str,
        reason: str | None,
    ) -> Quotation:
        """PENDING_APPROVAL -> DECLINED. A non-blank reason is mandatory."""
        if admin_role not in STAFF_ROLES:
            raise ForbiddenError("Only admins can decline quotations")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Decline reason required", field="reason")

        quotation = await QuotationService._require(db, tenant_id, quotation_id)
        if quotation.status != QuotationStatus.PENDING_APPROVAL.value:
            raise InvalidTransitionError("quotation", quotation.status, "decline")
        if QuotationService.is_past_validity(quotation):
            await QuotationService._mark_expired(db, quotation, actor_id=admin_id)
            raise InvalidTransitionError("quotation", QuotationStatus.EXPIRED.value, "decline")

        quotation = await QuotationService._transition(
            db, quotation, QuotationStatus.PENDING_APPROVAL.value, "decline",
            status=QuotationStatus.DECLINED.value,
            decline_reason=reason,
            reviewed_by=admin_id,
            reviewed_at=utcnow(),
        )
        await log_audit(
            db, tenant_id, admin_id, ACTION_QUOTATION_DECLINED,
            target_type="quotation", target_id=quotation.id,
            payload={"reason": reason},
        )
        logger.info("Quotation %s declined by %s", quotation.quotation_number, admin_id)
        return quotation

    @staticmethod
    async def delete(
        db: AsyncSession,
        tenant_id: UUID,
        quotation_id: UUID,
        requester_id: UUID,
    ) -> None:
        """Owner-only, and only while DRAFT. Anything past DRAFT is kept for the audit trail."""
        quotation = await QuotationService._require(db, tenant_id, quotation_id)
        if quotation.customer_id != requester_id:
            raise ForbiddenError("Only the quotation owner can delete it")
        if quotation.status != QuotationStatus.DRAFT.value:
            raise InvalidTransitionError("quotation", quotation.status, "delete")

        await log_audit(
            db, tenant_id, requester_id, ACTION_QUOTATION_DELETED,
            target_type="quotation", target_id=quotation.id,
            payload={"quotation_number": quotation.quotation_number},
        )
        await db.delete(quotation)
        await db.flush()

    # ── Expiry (externally triggered policy hook) ─────────────────────────────

    @staticmethod
    async def _mark_expired(db: AsyncSession, quotation: Quotation, actor_id: UUID | None = None) -> Quotation:
        quotation = await QuotationService._transition(
            db, quotation, quotation.status, "expire",
            status=QuotationStatus.EXPIRED.value,
        )
        await log_audit(
            db, quotation.tenant_id, actor_id, ACTION_QUOTATION_EXPIRED,
            target_type="quotation", target_id=quotation.id,
        )
        logger.info("Quotation %s expired", quotation.quotation_number)
        return quotation

    @staticmethod
    async def expire(db: AsyncSession, tenant_id: UUID, quotation_id: UUID, now: datetime | None = None) -> Quotation:
        """Move a single DRAFT/PENDING_APPROVAL quotation past its validity date to EXPIRED."""
        quotation = await QuotationService._require(db, tenant_id, quotation_id)
        if quotation.status not in EXPIRABLE_STATUSES:
            raise InvalidTransitionError("quotation", quotation.status, "expire")
        if not QuotationService.is_past_validity(quotation, now):
            raise ValidationError("Quotation is still within its validity period", field="valid_until")
        return await QuotationService._mark_expired(db, quotation)

    @staticmethod
    async def expire_stale(
        db: AsyncSession,
        now: datetime | None = None,
        tenant_id: UUID | None = None,
    ) -> int:
        """Bulk-expire every quotation past valid_until. Returns the number of rows moved."""
        now = now or utcnow()
        stmt = (
            update(Quotation)
            .where(
                Quotation.status.in_(EXPIRABLE_STATUSES),
                Quotation.valid_until.is_not(None),
                Quotation.valid_until < now,
            )
            .values(status=QuotationStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if tenant_id:
            stmt = stmt.where(Quotation.tenant_id == tenant_id)
        res = await db.execute(stmt)
        if res.rowcount:
            logger.info("Expired %d stale quotation(s)", res.rowcount)
        return res.rowcount or 0

    # ── Reads ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_quotation(
        db: AsyncSession,
        tenant_id: UUID,
        quotation_id: UUID,
        requester_id: UUID,
        requester_role: str,
    ) -> Quotation:
        """Customers may only read their own quotations. Expiry is applied at read time."""
        quotation = await QuotationService._require(db, tenant_id, quotation_id)
        if requester_role not in STAFF_ROLES and quotation.customer_id != requester_id:
            raise ForbiddenError("You do not have access to this quotation")
        if QuotationService.is_past_validity(quotation):
            quotation = await QuotationService._mark_expired(db, quotation)
        return quotation

    @staticmethod
    async def list_quotations(
        db: AsyncSession,
        tenant_id: UUID,
        requester_id: UUID,
        requester_role: str,
        *,
        status: str | None = None,
        customer_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Quotation], int]:
        """Paginated list, newest first. Role filtering happens before pagination."""
        await QuotationService.expire_stale(db, tenant_id=tenant_id)

        filters = [Quotation.tenant_id == tenant_id]
        if requester_role not in STAFF_ROLES:
            filters.append(Quotation.customer_id == requester_id)
        elif customer_id:
            filters.append(Quotation.customer_id == customer_id)
        if status:
            filters.append(Quotation.status == status)

        total = (await db.execute(select(func.count(Quotation.id)).where(*filters))).scalar_one()
        q = (
            select(Quotation)
            .where(*filters)
            .order_by(Quotation.created_at.desc(), Quotation.quotation_number.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(q)
        return list(result.scalars().all()), total

    @staticmethod
    async def credit_review(db: AsyncSession, tenant_id: UUID, quotation_id: UUID) -> CreditEvaluation:
        """Credit alert shown to the admin: frozen anticipated figure against the customer's limit."""
        quotation = await QuotationService._require(db, tenant_id, quotation_id)
        customer = await QuotationService._get_customer(db, tenant_id, quotation.customer_id)
        return CreditService.evaluate_frozen(
            customer.financial_limit,
            customer.current_outstanding,
            quotation.anticipated_outstanding,
        )
