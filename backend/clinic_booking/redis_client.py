"""Shared Redis connection for the availability cache backend."""

from functools import lru_cache

from redis import Redis

from .config import settings


@lru_cache
def get_redis_client() -> Redis:
    """Build the process-wide Redis client from settings.redis_url."""
    if not settings.redis_url:
        raise RuntimeError("REDIS_URL not set but the redis cache backend was requested")
    return Redis.from_url(settings.redis_url, socket_timeout=2.0)
