"""Storefront: AuditService."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.rbac import AuditLog

logger = logging.getLogger(__name__)

# ── Audit action constants ────────────────────────────────────────────────────
ACTION_QUOTATION_CREATED = "quotation.created"
ACTION_QUOTATION_SUBMITTED = "quotation.submitted"
ACTION_QUOTATION_APPROVED = "quotation.approved"
ACTION_QUOTATION_DECLINED = "quotation.declined"
ACTION_QUOTATION_DELETED = "quotation.deleted"
ACTION_QUOTATION_EXPIRED = "quotation.expired"
ACTION_ORDER_STATUS_UPDATED = "order.status_updated"
ACTION_ORDER_CANCELLED = "order.cancelled"


async def log_audit(
    db: AsyncSession,
    tenant_id: UUID,
    actor_id: UUID | None,
    action: str,
    target_type: str | None = None,
    target_id: UUID | None = None,
    payload: dict | None = None,
) -> None:
    """Stage an audit log entry in the caller's transaction; it commits or rolls back with the main action."""
    entry = AuditLog(
        tenant_id=tenant_id,
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payload=payload,
    )
    db.add(entry)
    logger.debug("audit %s %s:%s by %s", action, target_type, target_id, actor_id)
