"""Verification of tokens issued by the external auth provider.

Sign-up, login and refresh happen at the provider; this module only checks
signatures and turns claims into an explicit session object.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Optional

from jose import JWTError, jwt

from crmhub.core.config import get_settings
from crmhub.core.exceptions import UnauthorizedException

settings = get_settings()


@dataclass(frozen=True)
class AuthSession:
    """Acting user of a request, passed explicitly into each operation."""

    user_id: uuid.UUID
    email: Optional[str] = None
    role: Optional[str] = None


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode JWT access token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded token data

    Raises:
        UnauthorizedException: If token is invalid
    """
    options = {"verify_aud": settings.auth_jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options=options,
        )
    except JWTError as e:
        raise UnauthorizedException(f"Invalid token: {e}") from e


def session_from_token(token: str) -> AuthSession:
    """Build an AuthSession from a bearer token.

    Raises:
        UnauthorizedException: If the token is invalid or has no usable subject
    """
    payload = decode_access_token(token)
    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedException("Invalid token payload")

    try:
        user_id = uuid.UUID(str(subject))
    except ValueError as e:
        raise UnauthorizedException("Token subject is not a user id") from e

    return AuthSession(user_id=user_id, email=payload.get("email"), role=payload.get("role"))
