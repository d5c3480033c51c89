"""
Redis client initialization and connection management.

This module provides Redis client setup for session token revocation.
"""

import redis.asyncio as redis
from unipool.app.core.config import settings


# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(await redis_client.ping())
    except Exception:
        return False
