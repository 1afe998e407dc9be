# ruff: noqa: PLW0603
"""Redis connection management.

Provides async Redis client for:
- Access decision and unread-count caching
- Pub/Sub for real-time notifications
"""

from uuid import UUID

import redis.asyncio as redis

from src.config import get_settings
from src.core.logging import get_logger


logger = get_logger(__name__)

# Global Redis client
_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize Redis connection pool."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    # Test connection
    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.close()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance."""
    return _redis_client


def notification_channel(user_id: UUID | str) -> str:
    """Pub/Sub channel carrying one user's live notifications."""
    return f"notifications:user:{user_id}"


def unread_count_key(user_id: UUID | str) -> str:
    return f"notifications:unread:{user_id}"


def access_facts_key(user_id: UUID | str, category_id: UUID | str) -> str:
    """Cached acquisition facts for one (user, category) pair."""
    return f"access:{user_id}:{category_id}"
