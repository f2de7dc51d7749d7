"""Tests for the bounded response cache."""

from __future__ import annotations

import threading

import pytest

from app.cache import ResponseCache


def test_get_returns_stored_value(clock) -> None:
    cache = ResponseCache(clock=clock)
    cache.set("search:q=naruto", {"results": [], "provider": "fallback"})

    assert cache.get("search:q=naruto") == {"results": [], "provider": "fallback"}
    assert cache.get("search:q=bleach") is None


def test_301st_key_evicts_least_recently_used(clock) -> None:
    """Inserting past capacity drops exactly the least recently used entry."""

    cache = ResponseCache(max_entries=300, ttl_seconds=300, clock=clock)
    for index in range(300):
        cache.set(f"recent:page={index}", [index])

    # Touch the oldest key so the second-oldest becomes the eviction target.
    assert cache.get("recent:page=0") == [0]
    cache.set("recent:page=300", [300])

    assert len(cache) == 300
    assert "recent:page=1" not in cache
    assert "recent:page=0" in cache
    assert "recent:page=2" in cache
    assert "recent:page=300" in cache


def test_overwriting_existing_key_does_not_evict(clock) -> None:
    cache = ResponseCache(max_entries=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 3)

    assert len(cache) == 2
    assert cache.get("a") == 3
    assert cache.get("b") == 2


def test_expired_entries_are_removed_on_read(clock) -> None:
    """An entry past its TTL is absent even if it was recently used."""

    cache = ResponseCache(ttl_seconds=300, clock=clock)
    cache.set("details:id=mal-21", {"id": "mal-21"})
    clock.advance(299)
    assert cache.get("details:id=mal-21") == {"id": "mal-21"}

    clock.advance(1)
    assert cache.get("details:id=mal-21") is None
    assert len(cache) == 0


def test_per_entry_ttl_override(clock) -> None:
    cache = ResponseCache(ttl_seconds=300, clock=clock)
    cache.set("search:q=naruto", ["hit"], ttl=180)
    cache.set("recent:page=1", ["hit"])

    clock.advance(200)

    assert cache.get("search:q=naruto") is None
    assert cache.get("recent:page=1") == ["hit"]


def test_stats_and_clear(clock) -> None:
    cache = ResponseCache(max_entries=10, ttl_seconds=60, clock=clock)
    cache.set("genres", ["Action"])
    cache.get("genres")
    cache.get("missing")

    assert cache.stats() == {
        "hits": 1,
        "misses": 1,
        "size": 1,
        "maxEntries": 10,
        "ttlSeconds": 60,
    }
    assert cache.clear() == 1
    assert len(cache) == 0


def test_rejects_invalid_limits() -> None:
    with pytest.raises(ValueError):
        ResponseCache(max_entries=0)
    with pytest.raises(ValueError):
        ResponseCache(ttl_seconds=0)


def test_concurrent_writers_never_exceed_capacity() -> None:
    """Threads inserting at once leave a map no larger than its capacity."""

    cache = ResponseCache(max_entries=50)

    def writer(offset: int) -> None:
        for index in range(200):
            cache.set(f"k{offset}-{index}", index)
            cache.get(f"k{offset}-{index // 2}")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 50
