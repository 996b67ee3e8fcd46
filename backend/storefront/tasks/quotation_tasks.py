"""Storefront: quotation expiry sweep (Celery), the external trigger for the expiry policy."""
import asyncio
import logging

from storefront.db.session import async_session_maker
from storefront.services.quotation_service import QuotationService
from storefront.worker import celery_app

logger = logging.getLogger(__name__)


@celery_app.task
def expire_stale_quotations() -> int:
    """Move every DRAFT/PENDING_APPROVAL quotation past valid_until to EXPIRED."""
    return asyncio.run(_expire_stale_async())


async def _expire_stale_async() -> int:
    async with async_session_maker() as db:
        count = await QuotationService.expire_stale(db)
        await db.commit()
    logger.info("Expiry sweep finished: %d quotation(s) expired", count)
    return count
