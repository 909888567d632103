"""Unit tests for the in-memory TTL cache and the cache key builder."""

import pytest
from freezegun import freeze_time

from infrastructure.caching import CacheKeyBuilder, InMemoryTTLCache


@pytest.mark.unit
class TestInMemoryTTLCache:
    """Tests for InMemoryTTLCache."""

    def test_get_returns_stored_value(self):
        cache = InMemoryTTLCache("test")
        cache.set("a", {"text": "Bonjour"})

        assert cache.get("a") == {"text": "Bonjour"}

    def test_values_are_copied(self):
        cache = InMemoryTTLCache("test")
        value = {"items": [1]}
        cache.set("a", value)
        value["items"].append(2)

        cached = cache.get("a")
        cached["items"].append(3)

        assert cache.get("a") == {"items": [1]}

    def test_entries_expire(self):
        cache = InMemoryTTLCache("test", default_ttl_seconds=10)
        with freeze_time("2026-01-01 12:00:00") as frozen:
            cache.set("a", 1)
            frozen.tick(9)
            assert cache.get("a") == 1
            frozen.tick(2)
            assert cache.get("a") is None

    def test_zero_ttl_disables_caching(self):
        cache = InMemoryTTLCache("test")
        cache.set("a", 1, ttl_seconds=0)

        assert cache.get("a") is None

    def test_max_entries_evicts_earliest_expiry(self):
        cache = InMemoryTTLCache("test", max_entries=2)
        cache.set("short", 1, ttl_seconds=5)
        cache.set("long", 2, ttl_seconds=500)
        cache.set("new", 3, ttl_seconds=50)

        assert cache.get("short") is None
        assert cache.get("long") == 2
        assert cache.get("new") == 3

    def test_invalidate_prefix_returns_count(self):
        cache = InMemoryTTLCache("test")
        cache.set("language:FR", 1)
        cache.set("language:DE", 2)
        cache.set("other:FR", 3)

        assert cache.invalidate_prefix("language:") == 2
        assert cache.get("other:FR") == 3

    def test_stats_track_hits_and_misses(self):
        cache = InMemoryTTLCache("stats", default_ttl_seconds=30)
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")

        stats = cache.get_stats()

        assert stats == {
            "backend": "memory",
            "name": "stats",
            "entries": 1,
            "hits": 1,
            "misses": 1,
            "default_ttl_seconds": 30,
        }

    def test_clear_resets_entries_and_counters(self):
        cache = InMemoryTTLCache("test")
        cache.set("a", 1)
        cache.get("a")
        cache.clear()

        stats = cache.get_stats()
        assert stats["entries"] == 0
        assert stats["hits"] == 0


@pytest.mark.unit
class TestCacheKeyBuilder:
    """Tests for CacheKeyBuilder."""

    def test_prefix(self):
        assert CacheKeyBuilder("ns").prefix("a", "b") == "ns:a:b:"

    def test_build_is_deterministic_and_order_independent(self):
        builder = CacheKeyBuilder("provider_translation")

        first = builder.build("EN", "FR", text="Sea view", tone="formal")
        second = builder.build("EN", "FR", tone="formal", text="Sea view")

        assert first == second
        assert first.startswith("provider_translation:EN:FR:")

    def test_build_differs_by_hashed_value(self):
        builder = CacheKeyBuilder("ns")

        assert builder.build("EN", text="a") != builder.build("EN", text="b")
