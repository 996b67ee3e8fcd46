"""Storefront: NotificationService, fire-and-forget decision notices."""
import logging

from storefront.config import get_settings
from storefront.models.order import Order
from storefront.models.quotation import Quotation
from storefront.services.credit_service import CreditEvaluation

logger = logging.getLogger(__name__)

EVENT_QUOTATION_APPROVED = "quotation.approved"
EVENT_QUOTATION_DECLINED = "quotation.declined"


class NotificationService:
    """
    Queues notices on Celery after the decision has committed.
    Failures are logged and swallowed: a lost email never undoes an approval.
    """

    @staticmethod
    def _dispatch(payload: dict) -> bool:
        if not get_settings().NOTIFICATIONS_ENABLED:
            logger.debug("Notifications disabled, dropping %s", payload["event"])
            return False
        try:
            from storefront.tasks.notification_tasks import notify_quotation_decision

            notify_quotation_decision.delay(payload)
            return True
        except Exception as exc:
            logger.warning("Could not queue %s notice for %s: %s", payload["event"], payload["quotation_number"], exc)
            return False

    @staticmethod
    def quotation_approved(quotation: Quotation, order: Order, credit: CreditEvaluation) -> bool:
        return NotificationService._dispatch({
            "event": EVENT_QUOTATION_APPROVED,
            "tenant_id": str(quotation.tenant_id),
            "quotation_id": str(quotation.id),
            "quotation_number": quotation.quotation_number,
            "customer_id": str(quotation.customer_id),
            "customer_email": order.customer_email,
            "order_id": str(order.id),
            "order_number": order.order_number,
            "total_amount": str(order.total_amount),
            "credit_level": credit.level.value,
        })

    @staticmethod
    def quotation_declined(quotation: Quotation) -> bool:
        return NotificationService._dispatch({
            "event": EVENT_QUOTATION_DECLINED,
            "tenant_id": str(quotation.tenant_id),
            "quotation_id": str(quotation.id),
            "quotation_number": quotation.quotation_number,
            "customer_id": str(quotation.customer_id),
            "reason": quotation.decline_reason,
        })
