"""
Cache layer tests.

Tests cover:
- Key layout and list scopes
- TTL expiry with an injected clock
- Prefix invalidation for ticket lists
- Backend failures degrade to misses instead of raising
"""

from unittest.mock import MagicMock

import pytest
import redis

from helpdesk.core.cache import (
    RedisCacheBackend,
    TicketCache,
    filter_signature,
    interactions_key,
    ticket_key,
    ticket_list_key,
    user_key,
)
from helpdesk.core.errors import CacheError


def test_entity_keys():
    assert ticket_key(7) == "ticket:7"
    assert user_key(3) == "user:3"
    assert interactions_key(7) == "interactions:7"


def test_list_key_scope_prefers_owner_then_assignee():
    assert ticket_list_key({"owner_id": 5, "assignee_id": 9}).startswith("list:tickets:owner:5:")
    assert ticket_list_key({"assignee_id": 9}).startswith("list:tickets:assignee:9:")
    assert ticket_list_key({"state": "open"}).startswith("list:tickets:all:")


def test_filter_signature_is_order_independent_and_ignores_none():
    a = filter_signature({"state": "open", "limit": 50, "owner_id": None})
    b = filter_signature({"limit": 50, "state": "open"})
    assert a == b
    assert a != filter_signature({"state": "closed", "limit": 50})


def test_set_get_roundtrip_json(cache):
    cache.set("ticket:1", {"id": 1, "title": "x"})
    assert cache.get("ticket:1") == {"id": 1, "title": "x"}


def test_entry_expires_after_ttl(cache, clock):
    cache.set("ticket:1", {"id": 1}, ttl_seconds=300)

    clock.advance(299)
    assert cache.get("ticket:1") == {"id": 1}

    clock.advance(2)
    assert cache.get("ticket:1") is None


def test_size_skips_expired_entries(cache, clock):
    cache.set("a", 1, ttl_seconds=10)
    cache.set("b", 2, ttl_seconds=100)
    assert cache.size() == 2

    clock.advance(50)
    assert cache.size() == 1


def test_invalidate_pattern_removes_only_matching_prefix(cache):
    cache.set("list:tickets:owner:1:abc", [])
    cache.set("list:tickets:owner:1:def", [])
    cache.set("list:tickets:owner:2:abc", [])
    cache.set("ticket:1", {})

    removed = cache.invalidate_pattern("list:tickets:owner:1:")

    assert removed == 2
    assert cache.get("list:tickets:owner:2:abc") == []
    assert cache.get("ticket:1") == {}


def test_invalidate_ticket_drops_entity_timeline_and_lists(cache):
    cache.set("ticket:4", {"id": 4})
    cache.set("interactions:4", [])
    cache.set("list:tickets:owner:1:sig", [])
    cache.set("list:tickets:assignee:8:sig", [])
    cache.set("list:tickets:all:sig", [])
    cache.set("list:tickets:owner:2:sig", [])
    cache.set("ticket:5", {"id": 5})

    cache.invalidate_ticket(4, owner_id=1)

    assert cache.get("ticket:4") is None
    assert cache.get("interactions:4") is None
    assert cache.get("list:tickets:owner:1:sig") is None
    assert cache.get("list:tickets:assignee:8:sig") is None
    assert cache.get("list:tickets:all:sig") is None
    # Unrelated entries survive
    assert cache.get("list:tickets:owner:2:sig") == []
    assert cache.get("ticket:5") == {"id": 5}


def test_broken_backend_never_raises(broken_cache):
    assert broken_cache.get("ticket:1") is None
    assert broken_cache.set("ticket:1", {"id": 1}) is False
    assert broken_cache.invalidate("ticket:1") is False
    assert broken_cache.invalidate_pattern("list:") == 0
    assert broken_cache.size() is None
    broken_cache.invalidate_ticket(1, owner_id=1)


def test_corrupt_json_is_a_miss(cache, cache_backend):
    cache_backend.set("ticket:1", "{not json", 60)
    assert cache.get("ticket:1") is None


def test_redis_backend_uses_scan_for_prefix_delete():
    client = MagicMock()
    client.scan_iter.return_value = iter(["list:tickets:all:a", "list:tickets:all:b"])
    client.delete.return_value = 2
    cache = TicketCache(RedisCacheBackend(client), entity_ttl=300, list_ttl=60)

    assert cache.invalidate_pattern("list:tickets:all:") == 2
    client.scan_iter.assert_called_once_with(match="list:tickets:all:*", count=500)
    client.delete.assert_called_once_with("list:tickets:all:a", "list:tickets:all:b")


def test_redis_backend_set_uses_ttl():
    client = MagicMock()
    cache = TicketCache(RedisCacheBackend(client), entity_ttl=300, list_ttl=60)

    cache.set("ticket:1", {"id": 1}, ttl_seconds=60)

    client.set.assert_called_once_with("ticket:1", '{"id": 1}', ex=60)


def test_redis_errors_become_cache_errors():
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("connection refused")
    backend = RedisCacheBackend(client)

    with pytest.raises(CacheError):
        backend.get("ticket:1")
    assert TicketCache(backend, entity_ttl=300, list_ttl=60).get("ticket:1") is None


def test_explicit_zero_ttl_is_kept(cache_backend, clock):
    cache = TicketCache(cache_backend, entity_ttl=0, list_ttl=0)

    assert cache.entity_ttl == 0
    assert cache.list_ttl == 0

    cache.set("ticket:1", {"id": 1})
    assert cache.get("ticket:1") is None


def test_zero_ttl_override_is_passed_through():
    client = MagicMock()
    cache = TicketCache(RedisCacheBackend(client), entity_ttl=300, list_ttl=60)

    cache.set("ticket:1", {"id": 1}, ttl_seconds=0)

    client.set.assert_called_once_with("ticket:1", '{"id": 1}', ex=0)
