"""Process-local read-through cache for credit query results.

Results are keyed by input parameter (``nfse_<n>``, ``credito_<n>``...) and
served until they are invalidated, evicted by the LRU bound or expired by
the TTL. Loader failures propagate to the caller and are never cached.

The cache is a module-level singleton managed like the database engine:
``get_query_cache()`` builds it lazily from ``cache_config`` under a lock.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.core.config import CacheConfig, get_settings
from src.core.types import CacheKey


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Counters describing cache effectiveness."""

    hits: int
    misses: int
    size: int
    max_entries: int
    enabled: bool


@dataclass(slots=True)
class _Entry:
    value: Any
    expires_at: float | None


class QueryCache:
    """LRU cache with optional TTL and async read-through loading.

    Args:
        max_entries: Entries kept before the least recently used is evicted.
        ttl_seconds: Lifetime of an entry, or None to keep it until evicted.
        enabled: When False every lookup goes straight to the loader.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        max_entries: int = 1024,
        ttl_seconds: float | None = None,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self._clock = clock
        self._entries: OrderedDict[CacheKey, _Entry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_config(cls, config: CacheConfig) -> "QueryCache":
        """Build a cache from the ``cache_config`` settings section."""
        return cls(
            max_entries=config.max_entries,
            ttl_seconds=config.ttl_seconds,
            enabled=config.enabled,
        )

    def _lookup(self, key: CacheKey) -> tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and (
                entry.expires_at is None or entry.expires_at > self._clock()
            ):
                self._entries.move_to_end(key)
                self._hits += 1
                return True, entry.value
            if entry is not None:
                del self._entries[key]
            self._misses += 1
            return False, None

    def put(self, key: CacheKey, value: Any) -> None:  # noqa: ANN401 - any query result
        """Store a value, evicting the least recently used entry when full."""
        if not self.enabled:
            return
        expires_at = (
            self._clock() + self.ttl_seconds if self.ttl_seconds is not None else None
        )
        with self._lock:
            self._entries[key] = _Entry(value, expires_at)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry {}", evicted, cache_key=evicted)

    async def get_or_load[T](
        self, key: CacheKey, loader: Callable[[], Awaitable[T]]
    ) -> T:
        """Return the cached value for ``key`` or load, store and return it.

        Args:
            key: Cache key derived from the query input.
            loader: Coroutine factory computing the value on a miss.

        Returns:
            T: The cached or freshly loaded value.
        """
        if not self.enabled:
            return await loader()

        found, value = self._lookup(key)
        if found:
            logger.debug("Cache hit", cache_key=key)
            return value  # type: ignore[no-any-return]

        logger.debug("Cache miss", cache_key=key)
        loaded = await loader()
        self.put(key, loaded)
        return loaded

    def invalidate(self, key: CacheKey) -> bool:
        """Drop one entry. Returns whether it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``. Returns the count."""
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        logger.info("Invalidated {} cache entries", len(keys), prefix=prefix)
        return len(keys)

    def clear(self) -> int:
        """Drop every entry. Returns how many were dropped."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cleared {} cache entries", count)
        return count

    def stats(self) -> CacheStats:
        """Return hit and miss counters with the current size."""
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                max_entries=self.max_entries,
                enabled=self.enabled,
            )


class _CacheManager:
    """Holds the process-wide cache instance."""

    def __init__(self) -> None:
        self._cache: QueryCache | None = None
        self._lock = threading.Lock()

    def get_cache(self) -> QueryCache:
        if self._cache is None:
            with self._lock:
                # Double-checked locking pattern
                if self._cache is None:
                    config = get_settings().cache_config
                    self._cache = QueryCache.from_config(config)
                    logger.info(
                        "Created query cache - enabled: {}, max_entries: {}, ttl: {}",
                        config.enabled,
                        config.max_entries,
                        config.ttl_seconds,
                    )
        return self._cache

    def reset(self) -> None:
        """Forget the current instance. Used primarily for testing."""
        self._cache = None


_cache_manager = _CacheManager()


def get_query_cache() -> QueryCache:
    """Return the process-wide query cache."""
    return _cache_manager.get_cache()


def reset_query_cache() -> None:
    """Discard the process-wide query cache so the next call rebuilds it."""
    _cache_manager.reset()
