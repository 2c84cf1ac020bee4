"""Database repository layer.

Every query is scoped by the acting user's id; rows owned by someone else
are indistinguishable from rows that do not exist.
"""

import uuid
from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.core.exceptions import ConflictException
from crmhub.core.logging import get_logger
from crmhub.storage.database.models import ActivityLog, Contact, ContactStatus
from crmhub.storage.database.webhook_models import Webhook, WebhookEvent

logger = get_logger(__name__)


def _like_pattern(term: str) -> str:
    """Build a substring LIKE pattern with wildcards in ``term`` escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ContactRepository:
    """Repository for Contact model."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def create(self, user_id: uuid.UUID, **kwargs: Any) -> Contact:
        """Create new contact."""
        contact = Contact(user_id=user_id, **kwargs)
        self.session.add(contact)
        await self.session.flush()
        await self.session.refresh(contact)
        logger.info("contact_created", contact_id=str(contact.id), user_id=str(user_id))
        return contact

    async def get(self, contact_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Contact]:
        """Get contact by ID."""
        result = await self.session.execute(
            select(Contact).where(Contact.id == contact_id, Contact.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_contacts(
        self,
        user_id: uuid.UUID,
        search: Optional[str] = None,
        status: Optional[ContactStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Contact]:
        """List contacts, newest first, optionally filtered."""
        query = select(Contact).where(Contact.user_id == user_id)

        if search:
            pattern = _like_pattern(search)
            query = query.where(
                or_(
                    Contact.name.ilike(pattern, escape="\\"),
                    Contact.email.ilike(pattern, escape="\\"),
                    Contact.company.ilike(pattern, escape="\\"),
                )
            )

        if status is not None:
            query = query.where(Contact.status == status)

        result = await self.session.execute(
            query.order_by(Contact.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    async def update(self, contact: Contact, **kwargs: Any) -> Contact:
        """Update contact."""
        for key, value in kwargs.items():
            setattr(contact, key, value)
        await self.session.flush()
        await self.session.refresh(contact)
        logger.info("contact_updated", contact_id=str(contact.id), fields=sorted(kwargs))
        return contact

    async def delete(self, contact: Contact) -> None:
        """Delete contact together with its activity logs."""
        await self.session.delete(contact)
        await self.session.flush()
        logger.info("contact_deleted", contact_id=str(contact.id))


class ActivityLogRepository:
    """Repository for ActivityLog model."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def create(self, user_id: uuid.UUID, contact_id: uuid.UUID, **kwargs: Any) -> ActivityLog:
        """Create new activity log entry."""
        activity = ActivityLog(user_id=user_id, contact_id=contact_id, **kwargs)
        self.session.add(activity)
        await self.session.flush()
        await self.session.refresh(activity)
        logger.info(
            "activity_logged",
            activity_id=str(activity.id),
            contact_id=str(contact_id),
            action=activity.action,
        )
        return activity

    async def list_for_contact(self, contact_id: uuid.UUID, user_id: uuid.UUID) -> list[ActivityLog]:
        """Get all activity logs for a contact, newest first."""
        result = await self.session.execute(
            select(ActivityLog)
            .where(ActivityLog.contact_id == contact_id, ActivityLog.user_id == user_id)
            .order_by(ActivityLog.created_at.desc())
        )
        return list(result.scalars().all())


class WebhookRepository:
    """Repository for Webhook model."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def create(
        self,
        user_id: uuid.UUID,
        event_trigger: WebhookEvent,
        url: str,
        description: Optional[str] = None,
    ) -> Webhook:
        """Create new webhook.

        Raises:
            ConflictException: If the user already has a webhook for this event
        """
        webhook = Webhook(
            user_id=user_id,
            event_trigger=event_trigger.value,
            url=url,
            description=description,
        )
        self.session.add(webhook)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictException(
                f"Webhook already exists for event: {event_trigger.value}",
                details={"event_trigger": event_trigger.value},
            ) from e
        await self.session.refresh(webhook)
        logger.info(
            "webhook_created",
            webhook_id=str(webhook.id),
            user_id=str(user_id),
            event_trigger=webhook.event_trigger,
        )
        return webhook

    async def get(self, webhook_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Webhook]:
        """Get webhook by ID."""
        result = await self.session.execute(
            select(Webhook).where(Webhook.id == webhook_id, Webhook.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_webhooks(self, user_id: uuid.UUID) -> list[Webhook]:
        """List all webhooks for a user, newest first."""
        result = await self.session.execute(
            select(Webhook).where(Webhook.user_id == user_id).order_by(Webhook.created_at.desc())
        )
        return list(result.scalars().all())

    async def update(self, webhook: Webhook, **kwargs: Any) -> Webhook:
        """Update webhook."""
        for key, value in kwargs.items():
            setattr(webhook, key, value)
        await self.session.flush()
        await self.session.refresh(webhook)
        logger.info("webhook_updated", webhook_id=str(webhook.id), fields=sorted(kwargs))
        return webhook

    async def delete(self, webhook: Webhook) -> None:
        """Delete webhook."""
        await self.session.delete(webhook)
        await self.session.flush()
        logger.info("webhook_deleted", webhook_id=str(webhook.id))
