"""Redis connection factory for the artifact store.

The client owns a connection pool; it is created once in the application
lifespan and closed on shutdown.
"""
from __future__ import annotations

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.domain.errors import StorageError

logger = structlog.get_logger(__name__)


def create_redis_client(redis_url: str) -> Redis:
    """Build a pooled async client. No connection is opened until first use."""
    try:
        return Redis.from_url(redis_url, decode_responses=False)
    except ValueError as exc:
        raise StorageError(f"Invalid Redis URL: {exc}") from exc


async def check_connection(client: Redis) -> bool:
    try:
        await client.ping()
        return True
    except RedisError as exc:
        logger.error("Redis connection failed", error=str(exc))
        return False
