"""Post-commit scheduling of webhook dispatches.

Routes hand the committed record to a publisher; the dispatch itself runs
later, detached from the request, with its own database session.
"""

import uuid
from typing import Any, Optional

from fastapi import BackgroundTasks

from crmhub.core.config import get_settings
from crmhub.core.logging import get_logger
from crmhub.storage.database.base import AsyncSessionLocal
from crmhub.storage.database.webhook_models import WebhookEvent
from crmhub.webhooks.dispatcher import WebhookDispatcher

settings = get_settings()
logger = get_logger(__name__)


async def run_webhook_dispatch(event: str, user_id: str, data: Any) -> None:
    """Run a dispatch in a fresh database session."""
    async with AsyncSessionLocal() as session:
        await WebhookDispatcher(session).dispatch(event, user_id, data)


class WebhookEventPublisher:
    """Queues webhook dispatches on the configured backend."""

    def __init__(self, background_tasks: BackgroundTasks, backend: Optional[str] = None) -> None:
        """Initialize publisher.

        Args:
            background_tasks: Request-scoped FastAPI background tasks
            backend: ``background`` or ``celery`` (default from settings)
        """
        self.background_tasks = background_tasks
        self.backend = backend or settings.webhook_dispatch_backend

    def publish(self, event: WebhookEvent, user_id: uuid.UUID, data: dict[str, Any]) -> None:
        """Schedule a dispatch for an already committed mutation.

        Args:
            event: Event type
            user_id: Acting user
            data: JSON-compatible snapshot of the record
        """
        try:
            if self.backend == "celery":
                from crmhub.tasks.webhook_tasks import dispatch_webhook_event_task

                dispatch_webhook_event_task.delay(event.value, str(user_id), data)
            else:
                self.background_tasks.add_task(run_webhook_dispatch, event.value, str(user_id), data)
        except Exception as e:
            # The triggering mutation is already committed
            logger.error(
                "webhook_dispatch_schedule_failed",
                event_type=event.value,
                user_id=str(user_id),
                backend=self.backend,
                error=str(e),
                exc_info=True,
            )
            return

        logger.debug(
            "webhook_dispatch_scheduled",
            event_type=event.value,
            user_id=str(user_id),
            backend=self.backend,
        )
