"""Webhook-related Celery tasks."""

import asyncio
from typing import Any

from crmhub.core.logging import bind_request_context, clear_request_context, get_logger
from crmhub.storage.database.base import async_engine
from crmhub.tasks.celery_app import celery_app
from crmhub.webhooks.publisher import run_webhook_dispatch

logger = get_logger(__name__)


@celery_app.task(name="dispatch_webhook_event", bind=True)
def dispatch_webhook_event_task(self: Any, event: str, user_id: str, data: Any) -> dict:
    """Dispatch a webhook event from a worker.

    Delivery is best-effort; the task never retries.

    Returns:
        Dict with results
    """
    bind_request_context(task_id=self.request.id, user_id=user_id)
    try:
        return asyncio.run(_dispatch_webhook_event_async(event, user_id, data))
    finally:
        clear_request_context()


async def _dispatch_webhook_event_async(event: str, user_id: str, data: Any) -> dict:
    """Async implementation of webhook dispatch."""
    try:
        await run_webhook_dispatch(event, user_id, data)
        return {"status": "completed", "event": event}
    except Exception as e:
        logger.error("webhook_dispatch_task_failed", event_type=event, error=str(e), exc_info=True)
        return {"status": "failed", "event": event, "error": str(e)}
    finally:
        # Pooled connections are bound to this event loop
        await async_engine.dispose()
