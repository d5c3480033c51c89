"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
A session token is accepted from the Authorization header or the session cookie.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from unipool.app.core.config import settings
from unipool.app.core.exceptions import TokenRevokedError
from unipool.app.core.jwt import decode_access_token
from unipool.app.core.token_revocation import is_token_revoked
from unipool.app.db.session import get_db
from unipool.app.models.enums import UserStatus
from unipool.app.models.user import User

# HTTP Bearer security scheme; the cookie is the fallback, so no auto 403
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract the raw session token from the request.

    The bearer header wins when both are present.

    Raises:
        HTTPException: 401 if neither a bearer token nor the cookie is present
    """
    if credentials and credentials.credentials:
        return credentials.credentials

    cookie_token = request.cookies.get(settings.auth_cookie_name)
    if cookie_token:
        return cookie_token

    raise _unauthorized("Not authenticated")


async def get_current_user(
    token: str = Depends(get_session_token),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    FastAPI dependency for JWT authentication.

    Security checks:
    1. Validates JWT token signature and expiry
    2. Checks if token has been explicitly revoked (logout)
    3. Loads the user from the database (real-time check)
    4. Verifies the account status is active

    Returns:
        The acting User row

    Raises:
        HTTPException: 401 if authentication fails, 403 if the account is not active
    """
    # 1. Decode and validate JWT
    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    # 2. Check if this specific token has been revoked
    if await is_token_revoked(token):
        raise TokenRevokedError()

    # 3. Real-time database check
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise _unauthorized("User not found")

    # 4. Suspended and banned accounts keep valid tokens but cannot act
    if user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {user.status.value}",
        )

    return user
