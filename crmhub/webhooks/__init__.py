"""Webhook notification system."""

from crmhub.storage.database.webhook_models import WebhookEvent
from crmhub.webhooks.dispatcher import WebhookDispatcher, normalize_webhook_path

__all__ = ["WebhookDispatcher", "WebhookEvent", "normalize_webhook_path"]
