"""Shared fixtures for API tests.

Routes run against in-memory repositories so no database is required.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Iterator, Optional
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from pytest_mock import MockerFixture

from crmhub.api.app import app
from crmhub.api.auth import AuthSession
from crmhub.api.dependencies import (
    get_activity_repository,
    get_auth_session,
    get_contact_repository,
    get_event_publisher,
    get_webhook_repository,
)
from crmhub.core.config import get_settings
from crmhub.core.exceptions import ConflictException
from crmhub.storage.database.base import get_db
from crmhub.storage.database.models import ActivityLog, Contact, ContactStatus
from crmhub.storage.database.webhook_models import Webhook, WebhookEvent

USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
OTHER_USER_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakeContactRepository:
    def __init__(self) -> None:
        self.contacts: dict[uuid.UUID, Contact] = {}

    def add(self, user_id: uuid.UUID, **kwargs: Any) -> Contact:
        now = _now()
        kwargs.setdefault("status", ContactStatus.LEAD)
        contact = Contact(id=uuid.uuid4(), user_id=user_id, created_at=now, updated_at=now, **kwargs)
        self.contacts[contact.id] = contact
        return contact

    async def create(self, user_id: uuid.UUID, **kwargs: Any) -> Contact:
        return self.add(user_id, **kwargs)

    async def get(self, contact_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Contact]:
        contact = self.contacts.get(contact_id)
        if contact is None or contact.user_id != user_id:
            return None
        return contact

    async def list_contacts(
        self,
        user_id: uuid.UUID,
        search: Optional[str] = None,
        status: Optional[ContactStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Contact]:
        contacts = [c for c in self.contacts.values() if c.user_id == user_id]
        if search:
            contacts = [c for c in contacts if search.lower() in c.name.lower()]
        if status is not None:
            contacts = [c for c in contacts if c.status == status]
        return contacts[offset : offset + limit]

    async def update(self, contact: Contact, **kwargs: Any) -> Contact:
        for key, value in kwargs.items():
            setattr(contact, key, value)
        contact.updated_at = _now()
        return contact

    async def delete(self, contact: Contact) -> None:
        del self.contacts[contact.id]


class FakeActivityRepository:
    def __init__(self) -> None:
        self.activities: list[ActivityLog] = []

    async def create(self, user_id: uuid.UUID, contact_id: uuid.UUID, **kwargs: Any) -> ActivityLog:
        activity = ActivityLog(
            id=uuid.uuid4(),
            user_id=user_id,
            contact_id=contact_id,
            created_at=_now(),
            **kwargs,
        )
        self.activities.append(activity)
        return activity

    async def list_for_contact(self, contact_id: uuid.UUID, user_id: uuid.UUID) -> list[ActivityLog]:
        return [
            a for a in reversed(self.activities) if a.contact_id == contact_id and a.user_id == user_id
        ]


class FakeWebhookRepository:
    def __init__(self) -> None:
        self.webhooks: dict[uuid.UUID, Webhook] = {}

    def add(self, user_id: uuid.UUID, event_trigger: WebhookEvent, url: str) -> Webhook:
        webhook = Webhook(
            id=uuid.uuid4(),
            user_id=user_id,
            event_trigger=event_trigger.value,
            url=url,
            description=None,
            created_at=_now(),
        )
        self.webhooks[webhook.id] = webhook
        return webhook

    async def create(
        self,
        user_id: uuid.UUID,
        event_trigger: WebhookEvent,
        url: str,
        description: Optional[str] = None,
    ) -> Webhook:
        for existing in self.webhooks.values():
            if existing.user_id == user_id and existing.event_trigger == event_trigger.value:
                raise ConflictException(f"Webhook already exists for event: {event_trigger.value}")
        webhook = self.add(user_id, event_trigger, url)
        webhook.description = description
        return webhook

    async def get(self, webhook_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Webhook]:
        webhook = self.webhooks.get(webhook_id)
        if webhook is None or webhook.user_id != user_id:
            return None
        return webhook

    async def list_webhooks(self, user_id: uuid.UUID) -> list[Webhook]:
        return [w for w in self.webhooks.values() if w.user_id == user_id]

    async def update(self, webhook: Webhook, **kwargs: Any) -> Webhook:
        for key, value in kwargs.items():
            setattr(webhook, key, value)
        return webhook

    async def delete(self, webhook: Webhook) -> None:
        del self.webhooks[webhook.id]


class RecordingPublisher:
    def __init__(self) -> None:
        self.published: list[tuple[WebhookEvent, uuid.UUID, dict[str, Any]]] = []

    def publish(self, event: WebhookEvent, user_id: uuid.UUID, data: dict[str, Any]) -> None:
        self.published.append((event, user_id, data))


@dataclass
class ApiHarness:
    client: TestClient
    db: AsyncMock
    contacts: FakeContactRepository = field(default_factory=FakeContactRepository)
    activities: FakeActivityRepository = field(default_factory=FakeActivityRepository)
    webhooks: FakeWebhookRepository = field(default_factory=FakeWebhookRepository)
    publisher: RecordingPublisher = field(default_factory=RecordingPublisher)


@pytest.fixture
def api() -> Iterator[ApiHarness]:
    """Test client authenticated as USER_ID with in-memory storage."""
    harness = ApiHarness(client=TestClient(app), db=AsyncMock())

    async def override_get_db() -> AsyncGenerator[AsyncMock, None]:
        yield harness.db

    app.dependency_overrides[get_auth_session] = lambda: AuthSession(user_id=USER_ID)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_contact_repository] = lambda: harness.contacts
    app.dependency_overrides[get_activity_repository] = lambda: harness.activities
    app.dependency_overrides[get_webhook_repository] = lambda: harness.webhooks
    app.dependency_overrides[get_event_publisher] = lambda: harness.publisher

    yield harness

    app.dependency_overrides.clear()


@pytest.fixture
def scheduled_dispatches(api: ApiHarness, mocker: MockerFixture) -> AsyncMock:
    """Route events through the real publisher; the dispatch itself is stubbed."""
    del app.dependency_overrides[get_event_publisher]
    mocker.patch("crmhub.webhooks.publisher.settings.webhook_dispatch_backend", "background")
    return mocker.patch("crmhub.webhooks.publisher.run_webhook_dispatch", new_callable=AsyncMock)


def make_access_token(claims: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token the way the auth provider does."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {**claims, "iat": now, "exp": now + (expires_delta or timedelta(hours=1))}
    if settings.auth_jwt_audience is not None:
        payload.setdefault("aud", settings.auth_jwt_audience)
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)
