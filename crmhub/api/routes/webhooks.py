"""Webhook management routes."""

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.api.auth import AuthSession
from crmhub.api.dependencies import get_auth_session, get_webhook_repository
from crmhub.api.schemas.webhook_schemas import (
    WebhookCreate,
    WebhookResponse,
    WebhookTestPayload,
    WebhookTestResult,
    WebhookUpdate,
)
from crmhub.core.exceptions import NotFoundException
from crmhub.core.logging import get_logger
from crmhub.storage.database.base import get_db
from crmhub.storage.database.repository import WebhookRepository
from crmhub.storage.database.webhook_models import Webhook, WebhookEvent
from crmhub.webhooks.dispatcher import WebhookDispatcher

logger = get_logger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _get_owned_webhook(
    repo: WebhookRepository, webhook_id: uuid.UUID, session: AuthSession
) -> Webhook:
    webhook = await repo.get(webhook_id, session.user_id)
    if webhook is None:
        raise NotFoundException("Webhook not found", details={"webhook_id": str(webhook_id)})
    return webhook


@router.get("", response_model=list[WebhookResponse])
async def list_webhooks(
    session: AuthSession = Depends(get_auth_session),
    repo: WebhookRepository = Depends(get_webhook_repository),
) -> Any:
    """List all webhooks for current user."""
    return await repo.list_webhooks(session.user_id)


@router.post("", response_model=WebhookResponse, status_code=201)
async def create_webhook(
    webhook_data: WebhookCreate,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: WebhookRepository = Depends(get_webhook_repository),
) -> Any:
    """Create new webhook. One webhook per event trigger and user."""
    webhook = await repo.create(
        session.user_id,
        event_trigger=webhook_data.event_trigger,
        url=webhook_data.url,
        description=webhook_data.description or None,
    )
    await db.commit()
    return webhook


@router.get("/events/types", response_model=list[str])
async def list_event_types() -> Any:
    """List available webhook event types."""
    return [event.value for event in WebhookEvent]


@router.get("/{webhook_id}", response_model=WebhookResponse)
async def get_webhook(
    webhook_id: uuid.UUID,
    session: AuthSession = Depends(get_auth_session),
    repo: WebhookRepository = Depends(get_webhook_repository),
) -> Any:
    """Get webhook by ID."""
    return await _get_owned_webhook(repo, webhook_id, session)


@router.patch("/{webhook_id}", response_model=WebhookResponse)
async def update_webhook(
    webhook_id: uuid.UUID,
    webhook_data: WebhookUpdate,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: WebhookRepository = Depends(get_webhook_repository),
) -> Any:
    """Update webhook path or description."""
    webhook = await _get_owned_webhook(repo, webhook_id, session)

    update_data = webhook_data.model_dump(exclude_unset=True)
    if "description" in update_data:
        update_data["description"] = update_data["description"] or None

    webhook = await repo.update(webhook, **update_data)
    await db.commit()
    return webhook


@router.delete("/{webhook_id}", status_code=204)
async def delete_webhook(
    webhook_id: uuid.UUID,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: WebhookRepository = Depends(get_webhook_repository),
) -> None:
    """Delete webhook."""
    webhook = await _get_owned_webhook(repo, webhook_id, session)
    await repo.delete(webhook)
    await db.commit()


@router.post("/{webhook_id}/test", response_model=WebhookTestResult)
async def test_webhook(
    webhook_id: uuid.UUID,
    test_payload: WebhookTestPayload,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: WebhookRepository = Depends(get_webhook_repository),
) -> Any:
    """Send a sample event to one webhook and report the outcome."""
    webhook = await _get_owned_webhook(repo, webhook_id, session)

    payload = {
        "message": test_payload.message,
        "data": test_payload.data or {},
    }

    dispatcher = WebhookDispatcher(db)
    result = await dispatcher.deliver(webhook, WebhookEvent(webhook.event_trigger), payload)

    logger.info(
        "webhook_test_sent",
        webhook_id=str(webhook_id),
        user_id=str(session.user_id),
        outcome=result.outcome.value,
    )

    return WebhookTestResult(
        webhook_id=result.webhook_id,
        outcome=result.outcome.value,
        target=result.target,
        status_code=result.status_code,
        error=result.error,
    )
