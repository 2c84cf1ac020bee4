"""Celery application for out-of-process webhook dispatch.

Only used when ``WEBHOOK_DISPATCH_BACKEND=celery``; start a worker with::

    celery -A crmhub.tasks.celery_app worker -Q webhooks
"""

from typing import Any

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from crmhub.core.config import get_settings
from crmhub.core.logging import setup_logging

settings = get_settings()

celery_app = Celery(
    "crmhub",
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=["crmhub.tasks.webhook_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_routes={"dispatch_webhook_event": {"queue": settings.celery_webhook_queue}},
    # Deliveries are never retried, so results are not worth storing
    task_ignore_result=True,
    # Every webhook request may take the full timeout; allow a margin for the lookup
    task_time_limit=int(settings.webhook_timeout * 3) + 30,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs: Any) -> None:
    """Keep worker logs in the same structlog format as the API."""
    setup_logging()
