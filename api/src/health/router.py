"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, Request, Response, status
from redis.exceptions import RedisError

from src.config import get_settings
from src.core.database import AsyncCassandraConnection
from src.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - the process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, Any]:
    """Readiness probe - Cassandra is connected and the side-effect worker runs.

    Redis is optional; it is reported but never fails the probe.
    """
    cassandra_ok = AsyncCassandraConnection.is_connected()

    redis_client = get_redis()
    redis_status = "disabled"
    if redis_client is not None:
        try:
            await redis_client.ping()
            redis_status = "ok"
        except RedisError:
            redis_status = "unavailable"

    dispatcher = getattr(request.app.state, "dispatcher", None)
    dispatcher_stats = dispatcher.get_stats() if dispatcher is not None else None
    dispatcher_ok = dispatcher is not None and dispatcher.is_running

    ready = cassandra_ok and dispatcher_ok
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if ready else "not_ready",
        "cassandra": "ok" if cassandra_ok else "unavailable",
        "redis": redis_status,
        "side_effects": dispatcher_stats,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
