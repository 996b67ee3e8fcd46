"""Storefront: quotation decision notifications (Celery)."""
import asyncio
import hashlib
import hmac
import json
import logging

import httpx

from storefront.config import get_settings
from storefront.worker import celery_app

logger = logging.getLogger(__name__)


def sign_payload(payload_str: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload_str.encode("utf-8"), hashlib.sha256).hexdigest()


@celery_app.task(bind=True, max_retries=3)
def notify_quotation_decision(self, payload: dict) -> None:
    """
    POST the decision notice to the email relay.
    Retries with exponential backoff (5s, 10s, 20s) on transport errors or non-2xx.
    """
    try:
        asyncio.run(_deliver_notification_async(payload))
    except (httpx.RequestError, httpx.HTTPStatusError) as exc:
        delay = (2 ** self.request.retries) * 5
        logger.warning(
            "Notification %s for %s failed, retrying in %ss: %s",
            payload.get("event"), payload.get("quotation_number"), delay, exc,
        )
        raise self.retry(exc=exc, countdown=delay)


async def _deliver_notification_async(payload: dict) -> int:
    settings = get_settings()
    payload_str = json.dumps(payload, separators=(",", ":"), sort_keys=True)
    headers = {
        "Content-Type": "application/json",
        "X-Storefront-Signature": sign_payload(payload_str, settings.NOTIFICATION_SECRET),
        "X-Storefront-Event": payload.get("event", ""),
    }
    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.post(settings.NOTIFICATION_WEBHOOK_URL, content=payload_str, headers=headers)
        response.raise_for_status()
    logger.info("Delivered %s notice for %s", payload.get("event"), payload.get("quotation_number"))
    return response.status_code
