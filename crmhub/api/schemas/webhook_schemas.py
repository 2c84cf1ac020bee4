"""Pydantic schemas for webhooks."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crmhub.storage.database.webhook_models import WebhookEvent


def _check_path(value: str) -> str:
    if not value.startswith("/"):
        raise ValueError("Path must start with /")
    return value


class WebhookCreate(BaseModel):
    """Webhook creation request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    event_trigger: WebhookEvent
    url: str = Field(..., min_length=1, description="Path on the automation service, e.g. /webhook/abc")
    description: Optional[str] = None

    @field_validator("url")
    @classmethod
    def url_is_path(cls, value: str) -> str:
        return _check_path(value)


class WebhookUpdate(BaseModel):
    """Webhook update request. The event trigger cannot be changed."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    url: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None

    @field_validator("url")
    @classmethod
    def url_is_path(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Webhook path is required.")
        return _check_path(value)


class WebhookResponse(BaseModel):
    """Webhook response."""

    id: uuid.UUID
    user_id: uuid.UUID
    event_trigger: str
    url: str
    description: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WebhookEnvelope(BaseModel):
    """JSON body POSTed to the automation service."""

    event: str
    data: Any
    triggered_at: str


class WebhookTestPayload(BaseModel):
    """Webhook test payload."""

    message: str = "Test webhook delivery"
    data: Optional[dict] = None


class WebhookTestResult(BaseModel):
    """Outcome of a single test delivery."""

    webhook_id: str
    outcome: str
    target: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
