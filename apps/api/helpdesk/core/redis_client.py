"""Shared Redis connection for the cache, the task queue, and rate limiting.

`REDIS_URL=memory://` (or unset) turns Redis off entirely; callers then fall
back to their in-process backends.
"""

from __future__ import annotations

import redis

from helpdesk.core.config import settings

REDIS_DISABLED_URL = "memory://"
DEFAULT_REDIS_MAX_CONNECTIONS = 20
CONNECT_TIMEOUT_SECONDS = 2.0
SOCKET_TIMEOUT_SECONDS = 2.0
HEALTH_CHECK_INTERVAL_SECONDS = 30

_client: redis.Redis | None = None


def get_redis_url() -> str | None:
    """Configured Redis URL, or None when Redis is disabled."""
    url = (settings.REDIS_URL or "").strip()
    if not url or url.lower() == REDIS_DISABLED_URL:
        return None
    return url


def build_redis_client(url: str, max_connections: int | None = None) -> redis.Redis:
    """New client on its own pool; responses are decoded to str."""
    pool = redis.ConnectionPool.from_url(
        url,
        decode_responses=True,
        max_connections=max_connections or DEFAULT_REDIS_MAX_CONNECTIONS,
        socket_connect_timeout=CONNECT_TIMEOUT_SECONDS,
        socket_timeout=SOCKET_TIMEOUT_SECONDS,
        health_check_interval=HEALTH_CHECK_INTERVAL_SECONDS,
        retry_on_timeout=True,
    )
    return redis.Redis(connection_pool=pool)


def get_redis_client() -> redis.Redis | None:
    """Process-wide pooled client, created on first use."""
    global _client
    url = get_redis_url()
    if url is None:
        return None
    if _client is None:
        limit = settings.REDIS_MAX_CONNECTIONS if settings.REDIS_MAX_CONNECTIONS > 0 else None
        _client = build_redis_client(url, limit)
    return _client


def ping_redis(url: str, timeout: float = 1.0) -> None:
    """
    Check that Redis answers.

    Raises:
        redis.RedisError: unreachable or refused
    """
    client = redis.Redis.from_url(url, socket_connect_timeout=timeout)
    try:
        client.ping()
    finally:
        client.close()


def reset_redis_client() -> None:
    """Forget the pooled client so the next call re-reads settings."""
    global _client
    _client = None
