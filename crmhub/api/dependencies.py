"""Request dependencies for FastAPI."""

from typing import Optional

from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.api.auth import AuthSession, session_from_token
from crmhub.core.exceptions import UnauthorizedException
from crmhub.core.logging import bind_request_context
from crmhub.storage.database.base import get_db
from crmhub.storage.database.repository import (
    ActivityLogRepository,
    ContactRepository,
    WebhookRepository,
)
from crmhub.webhooks.publisher import WebhookEventPublisher

security = HTTPBearer(auto_error=False)


async def get_auth_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthSession:
    """Require an authenticated session.

    Args:
        credentials: HTTP Bearer credentials

    Returns:
        AuthSession for the acting user

    Raises:
        HTTPException: If no valid token was supplied
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        session = session_from_token(credentials.credentials)
    except UnauthorizedException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    bind_request_context(user_id=session.user_id)
    return session


def get_contact_repository(db: AsyncSession = Depends(get_db)) -> ContactRepository:
    """Contact repository bound to the request session."""
    return ContactRepository(db)


def get_activity_repository(db: AsyncSession = Depends(get_db)) -> ActivityLogRepository:
    """Activity log repository bound to the request session."""
    return ActivityLogRepository(db)


def get_webhook_repository(db: AsyncSession = Depends(get_db)) -> WebhookRepository:
    """Webhook repository bound to the request session."""
    return WebhookRepository(db)


def get_event_publisher(background_tasks: BackgroundTasks) -> WebhookEventPublisher:
    """Publisher that dispatches webhooks after the response is sent."""
    return WebhookEventPublisher(background_tasks)
