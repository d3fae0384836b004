"""Thread-safe in-memory cache of compilation results."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
import threading
import time
from typing import Callable, Generic, TypeVar

from .hashing import content_hash

__all__ = ["CompilationCache", "CacheStats", "cache_key"]

T = TypeVar("T")


def cache_key(
    raw_text: str,
    fingerprint: str,
    *,
    compiler_version: str,
    source_path: str = "",
) -> str:
    """Return the cache key for a document compiled with given options.

    The source path takes part because it names the component.
    """

    return content_hash(
        raw_text,
        compiler_version=compiler_version,
        algorithm="md5",
        extra=(fingerprint, source_path),
    )


@dataclass(frozen=True, slots=True)
class CacheStats:
    size: int
    max_entries: int
    ttl_seconds: float
    hits: int
    misses: int


@dataclass(slots=True)
class _Entry(Generic[T]):
    value: T
    stored_at: float


class CompilationCache(Generic[T]):
    """LRU cache with optional expiry.

    Every operation takes the same lock, so concurrent writers for one key
    leave exactly one entry behind (the last one stored).

    Example:
        >>> cache = CompilationCache(max_entries=1)
        >>> cache.set("a", 1)
        >>> cache.set("b", 2)
        >>> cache.get("a") is None, cache.get("b")
        (True, 2)
    """

    def __init__(
        self,
        *,
        max_entries: int = 100,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, _Entry[T]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> T | None:
        """Return the live value for ``key`` or ``None``."""

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._expired(entry):
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: T) -> None:
        """Store ``value`` under ``key``, evicting the oldest entries."""

        with self._lock:
            self._entries[key] = _Entry(value=value, stored_at=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all cached values."""

        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_entries=self._max_entries,
                ttl_seconds=self._ttl,
                hits=self._hits,
                misses=self._misses,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: _Entry[T]) -> bool:
        if self._ttl <= 0:
            return False
        return self._clock() - entry.stored_at > self._ttl
