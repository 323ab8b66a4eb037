"""Redis client construction from settings.

The client (and its connection pool) is owned by the caller and shared by
every engine built on it. Call close_redis_client() at shutdown.
"""

import logging

import redis.asyncio as redis

from recordcache.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings | None = None) -> redis.Redis:
    """Build a redis.asyncio client with decoded (str) responses."""
    settings = settings or get_settings()
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=(
            settings.redis_password.get_secret_value()
            if settings.redis_password
            else None
        ),
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
        socket_keepalive=True,
        max_connections=settings.redis_max_connections,
    )


async def connect_redis(settings: Settings | None = None) -> redis.Redis:
    """Create a client and verify the server answers PING.

    Raises:
        redis.ConnectionError: If the server is unreachable.
    """
    settings = settings or get_settings()
    client = create_redis_client(settings)
    await client.ping()
    logger.info("Redis cache connected: %s:%s", settings.redis_host, settings.redis_port)
    return client


async def close_redis_client(client: redis.Redis) -> None:
    await client.aclose()
    logger.info("Redis cache disconnected")
