"""
Token Revocation System using Redis.

Implements token blacklisting so a logged-out session token stops working
before its natural expiry.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from unipool.app.core import redis_client as redis_module
from unipool.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


def _remaining_ttl_seconds(expires_at: Optional[int]) -> int:
    """TTL for a blacklist entry: the token's remaining lifetime, or the full lifetime when unknown."""
    if expires_at is None:
        return settings.access_token_expire_minutes * 60
    remaining = int(expires_at - datetime.now(timezone.utc).timestamp())
    return max(remaining, 1)


async def revoke_token(token: str, user_id: int, expires_at: Optional[int] = None) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        user_id: User ID who owns the token
        expires_at: The token's `exp` claim, used to size the blacklist TTL

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        await redis_module.redis_client.setex(
            key,
            _remaining_ttl_seconds(expires_at),
            str(user_id)  # Store user_id for audit purposes
        )
        return True
    except Exception:
        logger.exception("Error revoking token", extra={"user_id": user_id})
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open: when Redis is unreachable the token is treated as valid.
    """
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        exists = await redis_module.redis_client.exists(key)
        return exists > 0
    except Exception:
        logger.warning("Token revocation check unavailable, allowing request", exc_info=True)
        return False
