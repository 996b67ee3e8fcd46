"""QuotationService: draft, submit, decline, delete, expiry and listing."""
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select, update

from storefront.core.exceptions import ForbiddenError, InvalidTransitionError, NotFoundError, ValidationError
from storefront.db.base import utcnow
from storefront.models.quotation import Quotation, QuotationStatus
from storefront.models.rbac import AuditLog
from storefront.services.quotation_service import QuotationService


async def _draft(db, tenant, customer, cart):
    quotation = await QuotationService.create_draft(db, tenant.id, customer.id, cart, shipping_address="Calle 1 #2-3")
    await db.commit()
    return quotation


async def _backdate(db, quotation_id):
    await db.execute(
        update(Quotation)
        .where(Quotation.id == quotation_id)
        .values(valid_until=utcnow() - timedelta(days=1))
    )
    await db.commit()


async def test_create_draft_snapshots_lines_and_totals(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)

    assert quotation.status == QuotationStatus.DRAFT.value
    assert quotation.quotation_number.startswith("QUO-")
    assert quotation.subtotal == Decimal("125.00")
    assert quotation.tax_amount == Decimal("23.75")
    assert quotation.total_amount == Decimal("148.75")
    assert quotation.anticipated_outstanding == Decimal("948.75")
    assert [i.product_name for i in quotation.items] == ["Claw Hammer", "Wood Screws 100pk"]
    assert quotation.valid_until is not None


async def test_create_draft_requires_items(db, tenant, customer):
    with pytest.raises(ValidationError):
        await QuotationService.create_draft(db, tenant.id, customer.id, [])


async def test_create_draft_for_staff_is_rejected(db, tenant, admin, cart):
    with pytest.raises(NotFoundError):
        await QuotationService.create_draft(db, tenant.id, admin.id, cart)


async def test_create_draft_writes_audit_row(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    actions = (await db.execute(
        select(AuditLog.action).where(AuditLog.target_id == quotation.id)
    )).scalars().all()
    assert actions == ["quotation.created"]


async def test_submit_freezes_anticipated_outstanding(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)

    submitted = await QuotationService.submit(db, tenant.id, quotation.id, customer.id)

    assert submitted.status == QuotationStatus.PENDING_APPROVAL.value
    assert submitted.submitted_at is not None
    assert submitted.anticipated_outstanding == Decimal("948.75")


async def test_submit_by_other_customer_is_forbidden(db, tenant, customer, other_customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    with pytest.raises(ForbiddenError):
        await QuotationService.submit(db, tenant.id, quotation.id, other_customer.id)


async def test_submit_twice_is_invalid(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, quotation.id, customer.id)

    with pytest.raises(InvalidTransitionError) as exc:
        await QuotationService.submit(db, tenant.id, quotation.id, customer.id)
    assert exc.value.current == QuotationStatus.PENDING_APPROVAL.value


async def test_submit_past_validity_expires_instead(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await _backdate(db, quotation.id)

    with pytest.raises(InvalidTransitionError):
        await QuotationService.submit(db, tenant.id, quotation.id, customer.id)

    status = await db.scalar(select(Quotation.status).where(Quotation.id == quotation.id))
    assert status == QuotationStatus.EXPIRED.value


async def test_decline_requires_reason(db, tenant, customer, admin, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, quotation.id, customer.id)

    with pytest.raises(ValidationError) as exc:
        await QuotationService.decline(db, tenant.id, quotation.id, admin.id, admin.role, "   ")
    assert exc.value.field == "reason"


async def test_decline_by_customer_is_forbidden(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, quotation.id, customer.id)
    with pytest.raises(ForbiddenError):
        await QuotationService.decline(db, tenant.id, quotation.id, customer.id, customer.role, "no")


async def test_decline_records_reason_and_reviewer(db, tenant, customer, admin, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, quotation.id, customer.id)

    declined = await QuotationService.decline(
        db, tenant.id, quotation.id, admin.id, admin.role, "  Prices changed  "
    )

    assert declined.status == QuotationStatus.DECLINED.value
    assert declined.decline_reason == "Prices changed"
    assert declined.reviewed_by == admin.id
    assert declined.reviewed_at is not None


async def test_decline_past_validity_expires_instead(db, tenant, customer, admin, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, quotation.id, customer.id)
    await db.commit()
    await _backdate(db, quotation.id)

    with pytest.raises(InvalidTransitionError) as exc:
        await QuotationService.decline(db, tenant.id, quotation.id, admin.id, admin.role, "Too late")

    assert exc.value.current == QuotationStatus.EXPIRED.value
    status = await db.scalar(select(Quotation.status).where(Quotation.id == quotation.id))
    assert status == QuotationStatus.EXPIRED.value


async def test_decline_draft_is_invalid(db, tenant, customer, admin, cart):
    quotation = await _draft(db, tenant, customer, cart)
    with pytest.raises(InvalidTransitionError):
        await QuotationService.decline(db, tenant.id, quotation.id, admin.id, admin.role, "No stock")


async def test_delete_draft(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)

    await QuotationService.delete(db, tenant.id, quotation.id, customer.id)
    await db.commit()

    assert await QuotationService.get_by_id(db, tenant.id, quotation.id) is None


async def test_delete_submitted_is_invalid(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, quotation.id, customer.id)
    with pytest.raises(InvalidTransitionError):
        await QuotationService.delete(db, tenant.id, quotation.id, customer.id)


async def test_expire_within_validity_is_rejected(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    with pytest.raises(ValidationError):
        await QuotationService.expire(db, tenant.id, quotation.id)


async def test_expire_pending_quotation(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, quotation.id, customer.id)
    await db.commit()

    expired = await QuotationService.expire(
        db, tenant.id, quotation.id, now=utcnow() + timedelta(days=31)
    )
    assert expired.status == QuotationStatus.EXPIRED.value


async def test_expire_stale_only_touches_open_quotations(db, tenant, customer, admin, cart):
    stale = await _draft(db, tenant, customer, cart)
    fresh = await _draft(db, tenant, customer, cart)
    declined = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, declined.id, customer.id)
    await QuotationService.decline(db, tenant.id, declined.id, admin.id, admin.role, "No")
    await db.commit()
    await _backdate(db, stale.id)
    await _backdate(db, declined.id)

    count = await QuotationService.expire_stale(db)
    await db.commit()

    assert count == 1
    statuses = dict((await db.execute(
        select(Quotation.id, Quotation.status).where(Quotation.id.in_([stale.id, fresh.id, declined.id]))
    )).all())
    assert statuses[stale.id] == QuotationStatus.EXPIRED.value
    assert statuses[fresh.id] == QuotationStatus.DRAFT.value
    assert statuses[declined.id] == QuotationStatus.DECLINED.value


async def test_get_quotation_applies_expiry(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await _backdate(db, quotation.id)

    fetched = await QuotationService.get_quotation(db, tenant.id, quotation.id, customer.id, customer.role)
    assert fetched.status == QuotationStatus.EXPIRED.value


async def test_get_quotation_of_other_customer_is_forbidden(db, tenant, customer, other_customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    with pytest.raises(ForbiddenError):
        await QuotationService.get_quotation(db, tenant.id, quotation.id, other_customer.id, other_customer.role)


async def test_get_unknown_quotation(db, tenant, customer):
    with pytest.raises(NotFoundError):
        await QuotationService.get_quotation(db, tenant.id, uuid.uuid4(), customer.id, customer.role)


async def test_list_scopes_customers_and_orders_newest_first(db, tenant, customer, other_customer, admin, cart):
    first = await _draft(db, tenant, customer, cart)
    second = await _draft(db, tenant, customer, cart)
    await _draft(db, tenant, other_customer, cart)

    mine, total = await QuotationService.list_quotations(db, tenant.id, customer.id, customer.role)
    assert total == 2
    assert [q.id for q in mine] == [second.id, first.id]

    everything, total = await QuotationService.list_quotations(db, tenant.id, admin.id, admin.role)
    assert total == 3

    filtered, total = await QuotationService.list_quotations(
        db, tenant.id, admin.id, admin.role, customer_id=other_customer.id
    )
    assert total == 1
    assert filtered[0].customer_id == other_customer.id


async def test_list_paginates_after_filtering(db, tenant, customer, other_customer, cart):
    for _ in range(3):
        await _draft(db, tenant, customer, cart)
    await _draft(db, tenant, other_customer, cart)

    page, total = await QuotationService.list_quotations(
        db, tenant.id, customer.id, customer.role, page=2, page_size=2
    )
    assert total == 3
    assert len(page) == 1


async def test_list_filters_by_status_after_expiry(db, tenant, customer, cart):
    quotation = await _draft(db, tenant, customer, cart)
    await _draft(db, tenant, customer, cart)
    await _backdate(db, quotation.id)

    expired, total = await QuotationService.list_quotations(
        db, tenant.id, customer.id, customer.role, status=QuotationStatus.EXPIRED.value
    )
    assert total == 1
    assert expired[0].id == quotation.id


async def test_credit_review_uses_frozen_figure(db, tenant, customer, admin, products):
    cart = [{"product_id": products["hammer"].id, "quantity": 10}]
    quotation = await _draft(db, tenant, customer, cart)
    await QuotationService.submit(db, tenant.id, quotation.id, customer.id)

    credit = await QuotationService.credit_review(db, tenant.id, quotation.id)

    # 500.00 + 95.00 tax on top of 800.00 outstanding
    assert credit.anticipated_outstanding == Decimal("1395.00")
    assert credit.over_amount == Decimal("395.00")
    assert credit.is_warning
