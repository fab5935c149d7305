"""Tests for the in-memory result cache."""

from object_recognition.services.cache import InMemoryCache


def test_cache_evicts_least_recently_used() -> None:
    cache = InMemoryCache(max_entries=2)
    cache.set("a", 1, ttl_seconds=60)
    cache.set("b", 2, ttl_seconds=60)
    assert cache.get("a") == 1

    cache.set("c", 3, ttl_seconds=60)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_cache_expires_entries() -> None:
    cache = InMemoryCache()
    cache.set("a", 1, ttl_seconds=0)

    assert cache.get("a") is None
    assert len(cache) == 0


def test_cache_clear() -> None:
    cache = InMemoryCache()
    cache.set("a", 1, ttl_seconds=60)

    cache.clear()

    assert cache.get("a") is None
