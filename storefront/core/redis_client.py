# storefront/core/redis_client.py
from functools import lru_cache

from redis import Redis

from storefront.core.config import get_settings

settings = get_settings()


@lru_cache
def get_redis() -> Redis:
    """
    Shared Redis client (connection pool) for the cart read cache.

    Every worker process points at the same REDIS_URL, so an entry
    invalidated by one worker is gone for all of them.
    No connection is opened until the first command.
    """
    return Redis.from_url(
        settings.REDIS_URL,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )
