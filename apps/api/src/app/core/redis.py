"""
Redis Connection

Optional async Redis client, used for rate limiting.
"""

import logging

from redis.asyncio import Redis, from_url

from app.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """Connect to Redis and verify the connection. Call on startup."""
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    redis_client = client
    return redis_client


async def get_redis() -> Redis | None:
    """Return the client, or None when Redis is not connected."""
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
