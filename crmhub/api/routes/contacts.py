"""API routes for contacts and their activity logs."""

import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.api.auth import AuthSession
from crmhub.api.dependencies import (
    get_activity_repository,
    get_auth_session,
    get_contact_repository,
    get_event_publisher,
)
from crmhub.api.schemas.schemas import (
    ActivityLogCreate,
    ActivityLogResponse,
    ContactCreate,
    ContactResponse,
    ContactStatusUpdate,
    ContactUpdate,
)
from crmhub.core.exceptions import NotFoundException
from crmhub.core.logging import get_logger
from crmhub.storage.database.base import get_db
from crmhub.storage.database.models import ActivityAction, Contact, ContactStatus
from crmhub.storage.database.repository import ActivityLogRepository, ContactRepository
from crmhub.storage.database.webhook_models import WebhookEvent
from crmhub.webhooks.publisher import WebhookEventPublisher

logger = get_logger(__name__)
router = APIRouter(prefix="/contacts", tags=["contacts"])


async def _get_owned_contact(
    repo: ContactRepository, contact_id: uuid.UUID, session: AuthSession
) -> Contact:
    contact = await repo.get(contact_id, session.user_id)
    if contact is None:
        raise NotFoundException("Contact not found", details={"contact_id": str(contact_id)})
    return contact


@router.get("", response_model=list[ContactResponse])
async def list_contacts(
    search: Optional[str] = Query(None, description="Substring of name, email or company"),
    status: Optional[ContactStatus] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: AuthSession = Depends(get_auth_session),
    repo: ContactRepository = Depends(get_contact_repository),
) -> Any:
    """List contacts for the current user, newest first."""
    return await repo.list_contacts(
        session.user_id,
        search=search.strip() if search else None,
        status=status,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=ContactResponse, status_code=201)
async def create_contact(
    contact_data: ContactCreate,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: ContactRepository = Depends(get_contact_repository),
    activities: ActivityLogRepository = Depends(get_activity_repository),
    publisher: WebhookEventPublisher = Depends(get_event_publisher),
) -> Any:
    """Create a contact and record a 'Created' activity for it."""
    contact = await repo.create(session.user_id, **contact_data.model_dump())
    await db.commit()
    # Snapshot before a rollback below could expire the instance
    response = ContactResponse.model_validate(contact)

    try:
        await activities.create(
            session.user_id,
            response.id,
            action=ActivityAction.CREATED.value,
            description=f"Contact {response.name} created.",
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(
            "contact_creation_activity_failed",
            contact_id=str(response.id),
            error=str(e),
        )

    publisher.publish(WebhookEvent.CONTACT_CREATED, session.user_id, response.model_dump(mode="json"))
    return response


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: uuid.UUID,
    session: AuthSession = Depends(get_auth_session),
    repo: ContactRepository = Depends(get_contact_repository),
) -> Any:
    """Get contact by ID."""
    return await _get_owned_contact(repo, contact_id, session)


@router.patch("/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: uuid.UUID,
    contact_data: ContactUpdate,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: ContactRepository = Depends(get_contact_repository),
    publisher: WebhookEventPublisher = Depends(get_event_publisher),
) -> Any:
    """Edit contact fields."""
    contact = await _get_owned_contact(repo, contact_id, session)

    update_data = contact_data.model_dump(exclude_unset=True)
    contact = await repo.update(contact, **update_data)
    await db.commit()

    response = ContactResponse.model_validate(contact)
    publisher.publish(WebhookEvent.CONTACT_UPDATED, session.user_id, response.model_dump(mode="json"))
    return response


@router.patch("/{contact_id}/status", response_model=ContactResponse)
async def update_contact_status(
    contact_id: uuid.UUID,
    status_data: ContactStatusUpdate,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: ContactRepository = Depends(get_contact_repository),
    publisher: WebhookEventPublisher = Depends(get_event_publisher),
) -> Any:
    """Change only the pipeline status of a contact."""
    contact = await _get_owned_contact(repo, contact_id, session)
    contact = await repo.update(contact, status=status_data.status)
    await db.commit()

    response = ContactResponse.model_validate(contact)
    publisher.publish(WebhookEvent.CONTACT_UPDATED, session.user_id, response.model_dump(mode="json"))
    return response


@router.delete("/{contact_id}", status_code=204)
async def delete_contact(
    contact_id: uuid.UUID,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: ContactRepository = Depends(get_contact_repository),
) -> None:
    """Delete contact and its activity logs."""
    contact = await _get_owned_contact(repo, contact_id, session)
    await repo.delete(contact)
    await db.commit()


@router.get("/{contact_id}/activities", response_model=list[ActivityLogResponse])
async def list_contact_activities(
    contact_id: uuid.UUID,
    session: AuthSession = Depends(get_auth_session),
    repo: ContactRepository = Depends(get_contact_repository),
    activities: ActivityLogRepository = Depends(get_activity_repository),
) -> Any:
    """List activities logged against a contact, newest first."""
    await _get_owned_contact(repo, contact_id, session)
    return await activities.list_for_contact(contact_id, session.user_id)


@router.post("/{contact_id}/activities", response_model=ActivityLogResponse, status_code=201)
async def create_contact_activity(
    contact_id: uuid.UUID,
    activity_data: ActivityLogCreate,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db),
    repo: ContactRepository = Depends(get_contact_repository),
    activities: ActivityLogRepository = Depends(get_activity_repository),
    publisher: WebhookEventPublisher = Depends(get_event_publisher),
) -> Any:
    """Log an activity against a contact."""
    await _get_owned_contact(repo, contact_id, session)

    activity = await activities.create(session.user_id, contact_id, **activity_data.model_dump())
    await db.commit()

    response = ActivityLogResponse.model_validate(activity)
    publisher.publish(WebhookEvent.ACTIVITY_CREATED, session.user_id, response.model_dump(mode="json"))
    return response
