"""
JWT bearer authentication.

Tokens are issued by the identity provider (or by ``create_access_token`` for
tooling and tests) and carry the caller's ``user_id``. Every failure is
reported as ``PermissionDeniedError`` with code ``AUTH_FAILED`` (HTTP 401).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any
from uuid import UUID

import jwt
from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.core.config import settings
from groupwatch.core.db import get_session
from groupwatch.core.errors import ErrorCode, PermissionDeniedError
from groupwatch.core.logging import bind_user_id
from groupwatch.models.user import User
from groupwatch.repositories.user import UserRepository

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _auth_failed(message: str) -> PermissionDeniedError:
    return PermissionDeniedError(
        code=ErrorCode.AUTH_FAILED,
        message=message,
        status_code=status.HTTP_401_UNAUTHORIZED,
    )


def create_access_token(user: User, *, expires_in: timedelta | None = None) -> tuple[str, datetime]:
    """
    Create a JWT access token for the user.

    Returns:
        Tuple of (token_string, expires_at_datetime)
    """
    now = datetime.now(timezone.utc)
    expires_at = now + (expires_in or timedelta(minutes=settings.access_token_expire_minutes))

    payload = {
        "user_id": str(user.id),
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(
        payload,
        settings.secret_key.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )
    logger.debug("JWT token created", extra={"subject": str(user.id)})
    return token, expires_at


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        jwt.ExpiredSignatureError: Token has expired
        jwt.InvalidTokenError: Token is invalid
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except jwt.ExpiredSignatureError:
        logger.warning("JWT token expired")
        raise
    except jwt.InvalidTokenError:
        logger.warning("JWT token invalid")
        raise


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> User:
    """FastAPI dependency resolving the authenticated caller from the bearer token."""

    if credentials is None:
        raise _auth_failed("Authorization header is missing.")

    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError as exc:
        raise _auth_failed("Token expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise _auth_failed("Invalid token.") from exc

    user_id_str = payload.get("user_id")
    if not user_id_str:
        raise _auth_failed("Invalid token: missing user_id.")
    try:
        user_id = UUID(str(user_id_str))
    except ValueError as exc:
        raise _auth_failed("Invalid token: malformed user_id.") from exc

    user = await UserRepository(session).get(user_id)
    if user is None or user.deleted:
        logger.warning("User not found for valid token", extra={"subject": str(user_id)})
        raise _auth_failed("User not found.")

    bind_user_id(str(user.id))
    return user


__all__ = ["create_access_token", "decode_access_token", "get_current_user"]
