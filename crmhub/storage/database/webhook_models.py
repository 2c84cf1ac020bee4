"""Webhook models for event notifications."""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from crmhub.storage.database.base import Base, CreatedAtMixin


class WebhookEvent(str, Enum):
    """Webhook event types."""

    CONTACT_CREATED = "contact.created"
    CONTACT_UPDATED = "contact.updated"
    ACTIVITY_CREATED = "activity.created"


class Webhook(Base, CreatedAtMixin):
    """Webhook configuration model.

    ``url`` holds the path relative to the automation proxy, not a full URL.
    """

    __tablename__ = "webhooks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    event_trigger: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "event_trigger", name="uq_webhooks_user_event"),
    )

    def __repr__(self) -> str:
        return f"<Webhook(id={self.id}, event_trigger='{self.event_trigger}', url='{self.url}')>"
