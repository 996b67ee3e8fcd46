"""Storefront: Celery worker configuration."""
from celery import Celery

from storefront.config import get_settings
from storefront.core.logging import setup_logging

settings = get_settings()
setup_logging(settings.LOG_LEVEL)

celery_app = Celery(
    "storefront",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.REDIS_URL,
    include=[
        "storefront.tasks.notification_tasks",
        "storefront.tasks.quotation_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_hijack_root_logger=False,
    task_default_retry_delay=60,
    task_max_retries=3,
    task_routes={
        "storefront.tasks.*": {"queue": "default"},
    },
)

# Celery Beat drives expiry from outside the API process; the API never schedules anything itself.
if settings.QUOTATION_EXPIRY_SWEEP_SECONDS > 0:
    celery_app.conf.beat_schedule = {
        "expire-stale-quotations": {
            "task": "storefront.tasks.quotation_tasks.expire_stale_quotations",
            "schedule": float(settings.QUOTATION_EXPIRY_SWEEP_SECONDS),
        },
    }
