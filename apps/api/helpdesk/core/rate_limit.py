"""Login rate limiting (slowapi), shared across workers through Redis when available."""

import logging
import os

import redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from helpdesk.core.redis_client import get_redis_url, ping_redis

logger = logging.getLogger(__name__)

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
MEMORY_STORAGE = "memory://"


def _build_limiter() -> Limiter:
    redis_url = get_redis_url()
    if IS_TESTING or redis_url is None:
        return Limiter(
            key_func=get_remote_address,
            storage_uri=MEMORY_STORAGE,
            enabled=not IS_TESTING,
        )

    try:
        ping_redis(redis_url)
    except redis.RedisError as e:
        # Counters become per-process
        logger.warning("Redis unavailable for rate limiting, using in-memory: %s", e)
        return Limiter(key_func=get_remote_address, storage_uri=MEMORY_STORAGE)
    return Limiter(key_func=get_remote_address, storage_uri=redis_url)


limiter = _build_limiter()
