"""Tests for the compilation cache."""

from __future__ import annotations

import threading

import pytest

from morphc.compiler import CompilationCache, cache_key


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_least_recently_used_entry_is_evicted() -> None:
    cache: CompilationCache[str] = CompilationCache(max_entries=2)
    cache.set("a", "A")
    cache.set("b", "B")
    assert cache.get("a") == "A"

    cache.set("c", "C")

    assert cache.get("b") is None
    assert cache.get("a") == "A"
    assert cache.get("c") == "C"
    assert len(cache) == 2


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache: CompilationCache[int] = CompilationCache(ttl_seconds=5, clock=clock)
    cache.set("k", 1)

    clock.now = 5.0
    assert cache.get("k") == 1
    clock.now = 5.5
    assert cache.get("k") is None
    assert len(cache) == 0


def test_zero_ttl_disables_expiry() -> None:
    clock = _Clock()
    cache: CompilationCache[int] = CompilationCache(ttl_seconds=0, clock=clock)
    cache.set("k", 1)

    clock.now = 10_000.0
    assert cache.get("k") == 1


def test_stats_count_hits_and_misses() -> None:
    cache: CompilationCache[int] = CompilationCache(max_entries=3, ttl_seconds=1)
    cache.set("k", 1)
    cache.get("k")
    cache.get("missing")

    stats = cache.stats()
    assert (stats.size, stats.hits, stats.misses) == (1, 1, 1)
    assert stats.max_entries == 3


def test_concurrent_writers_leave_one_entry() -> None:
    cache: CompilationCache[int] = CompilationCache()
    barrier = threading.Barrier(8)

    def _write(value: int) -> None:
        barrier.wait()
        for _ in range(50):
            cache.set("shared", value)

    threads = [threading.Thread(target=_write, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 1
    assert cache.get("shared") in range(8)


def test_invalidate_and_clear() -> None:
    cache: CompilationCache[int] = CompilationCache()
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    cache.clear()
    assert len(cache) == 0


def test_max_entries_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CompilationCache(max_entries=0)


def test_cache_key_covers_options_and_path() -> None:
    base = cache_key("<p></p>", "opts", compiler_version="1")

    assert base == cache_key("<p></p>", "opts", compiler_version="1")
    assert base != cache_key("<p></p>", "other", compiler_version="1")
    assert base != cache_key("<p></p>", "opts", compiler_version="1", source_path="A.morph")
    assert base != cache_key("<p> </p>", "opts", compiler_version="1")
