from __future__ import annotations

from .engine_cache import EngineCache, get_engine_cache


def test_create_and_get() -> None:
    cache = EngineCache(max_size=2)
    engine = cache.create("france", lambda: object())

    assert cache.get("france") is engine
    assert cache.get("spain") is None
    assert "france" in cache
    assert cache.stats()["hits"] == 1
    assert cache.stats()["misses"] == 1


def test_least_recently_used_is_evicted() -> None:
    cache = EngineCache(max_size=2)
    cache.create("a", lambda: "A")
    cache.create("b", lambda: "B")
    cache.get("a")
    cache.create("c", lambda: "C")

    assert cache.stats()["atlases"] == ["a", "c"]
    assert cache.stats()["evictions"] == 1
    assert len(cache) == 2


def test_get_or_create_builds_once() -> None:
    cache = EngineCache(max_size=0)
    calls = []

    def factory():
        calls.append(1)
        return "engine"

    assert cache.get_or_create("x", factory) == "engine"
    assert cache.get_or_create("x", factory) == "engine"
    assert len(calls) == 1


def test_create_replaces_existing_engine() -> None:
    cache = EngineCache()
    cache.create("x", lambda: "old")
    cache.create("x", lambda: "new")
    assert cache.get("x") == "new"
    assert len(cache) == 1


def test_evict_and_clear() -> None:
    cache = EngineCache()
    cache.create("x", lambda: "X")
    cache.create("y", lambda: "Y")

    assert cache.evict("x") is True
    assert cache.evict("x") is False
    cache.clear()
    assert cache.stats()["size"] == 0


def test_unbounded_cache_never_evicts() -> None:
    cache = EngineCache(max_size=0)
    for i in range(50):
        cache.create(str(i), lambda: i)
    assert len(cache) == 50
    assert cache.stats()["evictions"] == 0


def test_shared_cache_is_a_singleton() -> None:
    assert get_engine_cache() is get_engine_cache()
