"""
Redis Configuration

Async Redis client backing the rate limiter. Optional: when it is not
connected the limiter keeps its windows in process memory.
"""

from redis.asyncio import Redis, from_url

from campuslink.core.config import settings

# Redis client instance
redis_client: Redis | None = None


async def init_redis() -> Redis:
    """
    Initialize Redis connection.

    Call this on application startup.
    """
    global redis_client
    redis_client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await redis_client.ping()
    return redis_client


def get_redis() -> Redis | None:
    """
    Get Redis client instance.

    Returns None if Redis is not available (optional dependency).
    """
    return redis_client


async def close_redis() -> None:
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


async def redis_status() -> dict[str, str]:
    """Connection state for the debug endpoint. Rate limiting works either way."""
    if redis_client is None:
        return {"redis": "not initialized", "rate_limit_backend": "memory"}
    try:
        await redis_client.ping()
    except Exception as e:
        return {"redis": "error", "message": str(e), "rate_limit_backend": "memory"}
    return {"redis": "connected", "rate_limit_backend": "redis"}
