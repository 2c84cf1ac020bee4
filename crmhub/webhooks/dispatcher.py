"""Webhook event dispatcher.

Best-effort fan-out of domain events to the automation service. Every
failure is logged and contained; nothing is retried or persisted.
"""

import asyncio
import uuid
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Optional, Sequence, Union
from urllib.parse import urlsplit

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.api.schemas.webhook_schemas import WebhookEnvelope
from crmhub.core.config import get_settings
from crmhub.core.exceptions import InvalidWebhookPathException, WebhookDeliveryException
from crmhub.core.logging import get_logger
from crmhub.storage.database.webhook_models import Webhook, WebhookEvent

settings = get_settings()
logger = get_logger(__name__)

_URL_SCHEMES = ("http://", "https://")


class DeliveryOutcome(str, Enum):
    """Terminal state of a single webhook attempt."""

    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class DeliveryResult:
    """Result of a webhook delivery attempt. Used for logging only."""

    webhook_id: str
    outcome: DeliveryOutcome
    target: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None


def normalize_webhook_path(value: Optional[str]) -> str:
    """Turn a stored webhook value into a request path.

    A fully-qualified http(s) URL is reduced to its path, query and
    fragment. The result always starts with exactly one ``/`` added by
    this function; an existing leading slash is left alone.

    Args:
        value: Stored webhook path (or URL)

    Returns:
        Normalized path

    Raises:
        InvalidWebhookPathException: If the value is empty or an unparseable URL
    """
    if value is None or not value.strip():
        raise InvalidWebhookPathException("Webhook has no path configured")

    path = value.strip()
    if path.lower().startswith(_URL_SCHEMES):
        try:
            parts = urlsplit(path)
        except ValueError as e:
            raise InvalidWebhookPathException(
                f"Invalid webhook URL: {value}", details={"value": value}
            ) from e
        if not parts.netloc:
            raise InvalidWebhookPathException(
                f"Invalid webhook URL: {value}", details={"value": value}
            )
        path = parts.path
        if parts.query:
            path += f"?{parts.query}"
        if parts.fragment:
            path += f"#{parts.fragment}"

    if not path.startswith("/"):
        path = "/" + path
    return path


def is_full_url(value: Optional[str]) -> bool:
    """Check whether a stored webhook value is a full http(s) URL."""
    return bool(value) and value.strip().lower().startswith(_URL_SCHEMES)


def build_target_path(path: str, routing_prefix: str) -> str:
    """Prefix a normalized path with the proxy routing prefix."""
    return f"{routing_prefix.rstrip('/')}{path}"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WebhookDispatcher:
    """Handles webhook event dispatching and delivery."""

    def __init__(
        self,
        db: AsyncSession,
        client: Optional[httpx.AsyncClient] = None,
        routing_prefix: Optional[str] = None,
        max_concurrency: Optional[int] = None,
        cross_user_fanout: Optional[bool] = None,
    ) -> None:
        """Initialize webhook dispatcher.

        Args:
            db: Database session
            client: HTTP client to reuse (a short-lived one is created per call otherwise)
            routing_prefix: Path prefix the reverse proxy rewrites (default from settings)
            max_concurrency: Upper bound on simultaneous requests (default from settings)
            cross_user_fanout: Match webhooks of every user, not only the acting one
        """
        self.db = db
        self._client = client
        self.routing_prefix = routing_prefix or settings.webhook_routing_prefix
        self.max_concurrency = max_concurrency or settings.webhook_max_concurrency
        self.cross_user_fanout = (
            settings.webhook_cross_user_fanout if cross_user_fanout is None else cross_user_fanout
        )

    @asynccontextmanager
    async def _client_session(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected client or a short-lived one."""
        if self._client is not None:
            yield self._client
            return

        async with httpx.AsyncClient(
            base_url=settings.webhook_proxy_base_url,
            timeout=settings.webhook_timeout,
        ) as client:
            yield client

    async def dispatch(
        self,
        event: Union[WebhookEvent, str],
        user_id: Union[uuid.UUID, str, None],
        data: Any,
    ) -> None:
        """Dispatch webhook event to all subscribed webhooks.

        Never raises: every failure is logged and swallowed.

        Args:
            event: Event type
            user_id: Acting user
            data: Event payload (the record that was just written)
        """
        if not user_id:
            logger.error("webhook_dispatch_missing_user", event_type=str(event))
            return

        try:
            event = WebhookEvent(event)
            user_id = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
        except ValueError as e:
            logger.error("webhook_dispatch_invalid_arguments", event_type=str(event), error=str(e))
            return

        try:
            webhooks = await self._find_webhooks(event, user_id)
        except Exception as e:
            # Driver-level errors (refused connections) are not wrapped by SQLAlchemy
            logger.error(
                "webhook_lookup_failed",
                event_type=event.value,
                user_id=str(user_id),
                error=str(e) or e.__class__.__name__,
                exc_info=True,
            )
            return

        if not webhooks:
            logger.debug("webhook_no_subscribers", event_type=event.value, user_id=str(user_id))
            return

        logger.info(
            "dispatching_webhook_event",
            event_type=event.value,
            webhooks_count=len(webhooks),
            user_id=str(user_id),
        )

        try:
            results = await self._fan_out(webhooks, event, data)
        except Exception as e:
            logger.error(
                "webhook_dispatch_unexpected_error",
                event_type=event.value,
                error=str(e),
                exc_info=True,
            )
            return

        counts = Counter(result.outcome.value for result in results)
        logger.info(
            "webhook_dispatch_completed",
            event_type=event.value,
            delivered=counts[DeliveryOutcome.DELIVERED.value],
            failed=counts[DeliveryOutcome.FAILED.value],
            skipped=counts[DeliveryOutcome.SKIPPED.value],
        )

    async def deliver(self, webhook: Webhook, event: WebhookEvent, data: Any) -> DeliveryResult:
        """Deliver one event to a single webhook.

        Args:
            webhook: Webhook configuration
            event: Event type
            data: Event payload

        Returns:
            DeliveryResult describing the attempt
        """
        async with self._client_session() as client:
            return await self._deliver(client, webhook, event, data)

    async def _find_webhooks(self, event: WebhookEvent, user_id: uuid.UUID) -> Sequence[Webhook]:
        """Load the webhooks subscribed to an event."""
        query = select(Webhook).where(Webhook.event_trigger == event.value)

        if not self.cross_user_fanout:
            query = query.where(Webhook.user_id == user_id)

        result = await self.db.execute(query)
        return result.scalars().all()

    async def _fan_out(
        self,
        webhooks: Sequence[Webhook],
        event: WebhookEvent,
        data: Any,
    ) -> list[DeliveryResult]:
        """Deliver to every webhook concurrently and wait for all of them."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async with self._client_session() as client:

            async def bounded(webhook: Webhook) -> DeliveryResult:
                async with semaphore:
                    return await self._deliver(client, webhook, event, data)

            settled = await asyncio.gather(
                *(bounded(webhook) for webhook in webhooks),
                return_exceptions=True,
            )

        results: list[DeliveryResult] = []
        for webhook, outcome in zip(webhooks, settled):
            if isinstance(outcome, BaseException):
                logger.error(
                    "webhook_delivery_error",
                    webhook_id=str(webhook.id),
                    event_type=event.value,
                    error=str(outcome),
                    exc_info=outcome,
                )
                outcome = DeliveryResult(
                    webhook_id=str(webhook.id),
                    outcome=DeliveryOutcome.FAILED,
                    error=str(outcome),
                )
            results.append(outcome)
        return results

    async def _deliver(
        self,
        client: httpx.AsyncClient,
        webhook: Webhook,
        event: WebhookEvent,
        data: Any,
    ) -> DeliveryResult:
        """Attempt to deliver webhook.

        Args:
            client: HTTP client
            webhook: Webhook configuration
            event: Event type
            data: Event payload

        Returns:
            DeliveryResult for this webhook
        """
        webhook_id = str(webhook.id)

        try:
            path = normalize_webhook_path(webhook.url)
        except InvalidWebhookPathException as e:
            logger.warning(
                "webhook_invalid_path",
                webhook_id=webhook_id,
                url=webhook.url,
                error=e.message,
            )
            return DeliveryResult(webhook_id, DeliveryOutcome.SKIPPED, error=e.message)

        if is_full_url(webhook.url):
            logger.warning("webhook_full_url_stored", webhook_id=webhook_id, path=path)

        target = build_target_path(path, self.routing_prefix)
        envelope = WebhookEnvelope(event=event.value, data=data, triggered_at=utc_timestamp())

        try:
            response = await self._post(client, target, envelope)
        except WebhookDeliveryException as e:
            logger.error(
                "webhook_delivery_failed",
                webhook_id=webhook_id,
                target=target,
                event_type=event.value,
                status_code=e.status_code,
                error=e.message,
                **e.details,
            )
            return DeliveryResult(
                webhook_id,
                DeliveryOutcome.FAILED,
                target=target,
                status_code=e.status_code,
                error=e.message,
            )

        logger.info(
            "webhook_delivered_successfully",
            webhook_id=webhook_id,
            target=target,
            event_type=event.value,
            status_code=response.status_code,
        )
        return DeliveryResult(
            webhook_id,
            DeliveryOutcome.DELIVERED,
            target=target,
            status_code=response.status_code,
        )

    async def _post(
        self,
        client: httpx.AsyncClient,
        target: str,
        envelope: WebhookEnvelope,
    ) -> httpx.Response:
        """POST the envelope to the proxied target.

        Raises:
            WebhookDeliveryException: If the request failed or the endpoint
                answered with a non-2xx status
        """
        try:
            response = await client.post(
                target,
                json=envelope.model_dump(mode="json"),
                headers={"Content-Type": "application/json"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise WebhookDeliveryException(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            raise WebhookDeliveryException(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                details={
                    "reason": response.reason_phrase,
                    "response_body": response.text[: settings.webhook_response_body_limit],
                },
            )
        return response
