"""Read-through cache for tickets, users, and ticket list queries.

Keys:
    ticket:{id}
    user:{id}
    interactions:{ticket_id}
    list:tickets:{scope}:{signature}   scope = owner:{id} | assignee:{id} | all

The cache is never the source of truth. Every call is best-effort: backend
errors are logged and swallowed, reads degrade to a miss, and TTLs bound
staleness when an invalidation is lost.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Protocol

import redis

from helpdesk.core.config import settings
from helpdesk.core.errors import CacheError
from helpdesk.core.redis_client import get_redis_client

logger = logging.getLogger(__name__)

# Backend failures plus undecodable or unencodable payloads
CACHE_FAILURES = (CacheError, ValueError, TypeError)

TICKET_LIST_PREFIX = "list:tickets:"


# =============================================================================
# Key helpers
# =============================================================================

def ticket_key(ticket_id: int) -> str:
    return f"ticket:{ticket_id}"


def user_key(user_id: int) -> str:
    return f"user:{user_id}"


def interactions_key(ticket_id: int) -> str:
    return f"interactions:{ticket_id}"


def ticket_list_scope(owner_id: int | None = None, assignee_id: int | None = None) -> str:
    """Narrowest scope a list query belongs to (used for targeted invalidation)."""
    if owner_id is not None:
        return f"owner:{owner_id}"
    if assignee_id is not None:
        return f"assignee:{assignee_id}"
    return "all"


def filter_signature(filters: dict[str, Any]) -> str:
    """Stable short hash of a filter set; None values are ignored."""
    normalized = {k: v for k, v in sorted(filters.items()) if v is not None}
    encoded = json.dumps(normalized, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


def ticket_list_key(filters: dict[str, Any]) -> str:
    scope = ticket_list_scope(filters.get("owner_id"), filters.get("assignee_id"))
    return f"{TICKET_LIST_PREFIX}{scope}:{filter_signature(filters)}"


# =============================================================================
# Backends
# =============================================================================

class CacheBackend(Protocol):
    """Raw string key-value store with TTL and prefix deletion."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def delete_by_prefix(self, prefix: str) -> int: ...

    def size(self) -> int: ...


class RedisCacheBackend:
    """
    Cache backend on a redis-py client (decode_responses=True).

    Redis failures surface as CacheError.
    """

    def __init__(self, client):
        self.client = client

    @contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except redis.RedisError as exc:
            raise CacheError(f"Redis {operation} failed: {exc}") from exc

    def get(self, key: str) -> str | None:
        with self._errors("GET"):
            return self.client.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._errors("SET"):
            self.client.set(key, value, ex=ttl_seconds)

    def delete(self, key: str) -> None:
        with self._errors("DEL"):
            self.client.delete(key)

    def delete_by_prefix(self, prefix: str) -> int:
        with self._errors("SCAN"):
            keys = list(self.client.scan_iter(match=f"{prefix}*", count=500))
            if not keys:
                return 0
            return int(self.client.delete(*keys))

    def size(self) -> int:
        with self._errors("DBSIZE"):
            return int(self.client.dbsize())


class InMemoryCacheBackend:
    """
    Process-local TTL dictionary.

    Used when REDIS_URL is disabled and in tests; `clock` can be swapped to
    drive expiry deterministically.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}
        self._lock = threading.Lock()

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[key]

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_by_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def size(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)


# =============================================================================
# Best-effort cache facade
# =============================================================================

class TicketCache:
    """JSON cache facade that never raises into the caller."""

    def __init__(
        self,
        backend: CacheBackend,
        *,
        entity_ttl: int | None = None,
        list_ttl: int | None = None,
    ):
        self.backend = backend
        self.entity_ttl = (
            settings.CACHE_ENTITY_TTL_SECONDS if entity_ttl is None else entity_ttl
        )
        self.list_ttl = settings.CACHE_LIST_TTL_SECONDS if list_ttl is None else list_ttl

    def get(self, key: str) -> Any | None:
        try:
            raw = self.backend.get(key)
            return json.loads(raw) if raw is not None else None
        except CACHE_FAILURES:
            logger.warning("Cache read failed for %s; treating as miss", key, exc_info=True)
            return None

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        try:
            payload = json.dumps(value, default=str)
            ttl = self.entity_ttl if ttl_seconds is None else ttl_seconds
            self.backend.set(key, payload, ttl)
            return True
        except CACHE_FAILURES:
            logger.warning("Cache write failed for %s", key, exc_info=True)
            return False

    def invalidate(self, key: str) -> bool:
        try:
            self.backend.delete(key)
            return True
        except CACHE_FAILURES:
            logger.warning("Cache invalidation failed for %s", key, exc_info=True)
            return False

    def invalidate_pattern(self, prefix: str) -> int:
        try:
            return self.backend.delete_by_prefix(prefix)
        except CACHE_FAILURES:
            logger.warning("Cache prefix invalidation failed for %s", prefix, exc_info=True)
            return 0

    def size(self) -> int | None:
        """Key count for observability; None when the backend is unreachable."""
        try:
            return self.backend.size()
        except CACHE_FAILURES:
            logger.warning("Cache size lookup failed", exc_info=True)
            return None

    def invalidate_ticket_lists(self, owner_id: int) -> None:
        """Drop every cached list that could contain a ticket of this owner."""
        self.invalidate_pattern(f"{TICKET_LIST_PREFIX}owner:{owner_id}:")
        self.invalidate_pattern(f"{TICKET_LIST_PREFIX}assignee:")
        self.invalidate_pattern(f"{TICKET_LIST_PREFIX}all:")

    def invalidate_ticket(self, ticket_id: int, owner_id: int) -> None:
        """Drop the ticket entry, its interaction list, and the lists it can appear in."""
        self.invalidate(ticket_key(ticket_id))
        self.invalidate(interactions_key(ticket_id))
        self.invalidate_ticket_lists(owner_id)


_memory_backend: InMemoryCacheBackend | None = None


def build_cache() -> TicketCache:
    """Cache on Redis when configured, otherwise a process-wide in-memory backend."""
    client = get_redis_client()
    if client is not None:
        return TicketCache(RedisCacheBackend(client))

    global _memory_backend
    if _memory_backend is None:
        _memory_backend = InMemoryCacheBackend()
    return TicketCache(_memory_backend)
