"""
Unit Tests for the upstream response cache
"""
from portal.services.cache_service import CacheService


class TestCacheTTL:
    """Entries expire lazily after the TTL"""

    def test_get_returns_value_immediately(self, clock):
        cache = CacheService(ttl_seconds=300, clock=clock)
        cache.set("class:9", {"id": 9})

        assert cache.get("class:9") == {"id": 9}

    def test_value_survives_until_ttl(self, clock):
        cache = CacheService(ttl_seconds=300, clock=clock)
        cache.set("class:9", {"id": 9})

        clock.advance(300)

        assert cache.get("class:9") == {"id": 9}

    def test_expired_entry_is_evicted_on_read(self, clock):
        cache = CacheService(ttl_seconds=300, clock=clock)
        cache.set("class:9", {"id": 9})

        clock.advance(301)

        assert cache.get("class:9") is None
        assert "class:9" not in cache
        assert len(cache) == 0

    def test_set_repopulates_after_expiry(self, clock):
        cache = CacheService(ttl_seconds=300, clock=clock)
        cache.set("class:9", {"id": 9, "v": 1})
        clock.advance(400)
        assert cache.get("class:9") is None

        cache.set("class:9", {"id": 9, "v": 2})

        assert cache.get("class:9") == {"id": 9, "v": 2}

    def test_missing_key(self, clock):
        cache = CacheService(ttl_seconds=300, clock=clock)
        assert cache.get("class:404") is None


class TestCacheInvalidation:

    def test_invalidate_removes_entry(self, clock):
        cache = CacheService(ttl_seconds=300, clock=clock)
        cache.set(CacheService.class_key(9), {"id": 9})

        assert cache.invalidate(CacheService.class_key(9)) is True
        assert cache.get(CacheService.class_key(9)) is None

    def test_invalidate_missing_key_is_noop(self, clock):
        cache = CacheService(ttl_seconds=300, clock=clock)
        assert cache.invalidate("class:1") is False

    def test_clear(self, clock):
        cache = CacheService(ttl_seconds=300, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.clear()

        assert len(cache) == 0

    def test_class_key_prefix(self):
        assert CacheService.class_key(42) == "class:42"

    def test_default_ttl_is_five_minutes(self):
        assert CacheService().ttl_seconds == 300
