import threading

import pytest

from mohstats.services.shared.ttl_cache import TTLCache
from tests.conftest import FakeClock


def test_fresh_entry_is_served_without_refetch():
    clock = FakeClock(1000.0)
    cache = TTLCache(ttl=450, clock=clock)
    calls = []

    def fetch():
        calls.append(1)
        return {"servers": len(calls)}

    assert cache.get_or_fetch("motd:mohaa", fetch) == {"servers": 1}
    clock.advance(449)
    assert cache.get_or_fetch("motd:mohaa", fetch) == {"servers": 1}
    assert len(calls) == 1
    assert cache.stats()["hits"] == 1
    assert cache.stats()["misses"] == 1


def test_expired_entry_is_refetched():
    clock = FakeClock(1000.0)
    cache = TTLCache(ttl=450, clock=clock)
    values = iter(["first", "second"])

    assert cache.get_or_fetch("k", lambda: next(values)) == "first"
    clock.advance(450)
    assert cache.get("k") is None
    assert cache.get_or_fetch("k", lambda: next(values)) == "second"


def test_failed_refresh_keeps_previous_entry():
    clock = FakeClock(1000.0)
    cache = TTLCache(ttl=450, clock=clock)
    cache.get_or_fetch("k", lambda: "good")
    clock.advance(500)

    def boom():
        raise RuntimeError("upstream down")

    with pytest.raises(RuntimeError):
        cache.get_or_fetch("k", boom)

    assert "k" in cache.keys()
    # Still the old value, merely stale under the default ttl
    assert cache.get("k", ttl=10_000) == "good"
    assert cache.stats()["errors"] == 1

    # A failure for a key never seen before stores nothing
    with pytest.raises(RuntimeError):
        cache.get_or_fetch("other", boom)
    assert "other" not in cache.keys()


def test_clear_single_key_and_all():
    cache = TTLCache(ttl=450)
    cache.get_or_fetch("a", lambda: 1)
    cache.get_or_fetch("b", lambda: 2)

    assert cache.clear("a") == 1
    assert cache.clear("a") == 0
    assert cache.keys() == ["b"]
    assert cache.clear() == 1
    assert cache.keys() == []


def test_per_call_ttl_override():
    clock = FakeClock(0.0)
    cache = TTLCache(ttl=450, clock=clock)
    cache.get_or_fetch("k", lambda: "v")
    clock.advance(60)
    assert cache.get("k", ttl=30) is None
    assert cache.get("k") == "v"


def test_invalid_ttl_rejected():
    with pytest.raises(ValueError):
        TTLCache(ttl=0)


def test_concurrent_cold_callers_share_one_fetch():
    cache = TTLCache(ttl=450)
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fetch():
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return "value"

    results = []

    def worker():
        results.append(cache.get_or_fetch("serverlist:mohaa", slow_fetch))

    first = threading.Thread(target=worker)
    first.start()
    assert started.wait(timeout=5)
    others = [threading.Thread(target=worker) for _ in range(3)]
    for t in others:
        t.start()
    release.set()
    for t in [first] + others:
        t.join(timeout=5)

    assert results == ["value"] * 4
    assert len(calls) == 1
