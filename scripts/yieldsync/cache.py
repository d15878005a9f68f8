"""
TTL caching for batched source queries.

``TTLCache`` is a small generic key/value store with an injectable clock.
``BatchCache`` sits on top of it and amortizes many per-pool lookups into one
physical request per partition (e.g. one GraphQL call per chain).
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    key: Any
    payload: V
    fetched_at: float
    ttl: float

    def is_stale(self, now: float) -> bool:
        return now - self.fetched_at > self.ttl


class TTLCache(Generic[K, V]):
    """In-memory cache whose entries expire ``ttl`` seconds after being set."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[K, CacheEntry[V]] = {}
        self.hits = 0
        self.misses = 0

    def get_entry(self, key: K) -> Optional[CacheEntry[V]]:
        """Return the fresh entry for ``key``, evicting it if stale."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.is_stale(self._clock()):
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry

    def get(self, key: K) -> Optional[V]:
        entry = self.get_entry(key)
        return entry.payload if entry else None

    def set(self, key: K, value: V, ttl: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(
            key=key,
            payload=value,
            fetched_at=self._clock(),
            ttl=self.ttl if ttl is None else ttl,
        )

    def invalidate(self, key: K) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: K) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_stale(self._clock())


PartitionLoader = Callable[[Any], Awaitable[Dict[str, V]]]


class BatchCache(Generic[V]):
    """Cache of batched query results, one entry per partition.

    A lookup against a stale or missing partition triggers a refresh of every
    partition concurrently; the refresh replaces the cache wholesale. While a
    refresh is in flight, all other lookups await the same task instead of
    starting their own.

    Args:
        name: Label used in log messages and stats.
        partitions: Partition keys to load on each refresh.
        loader: Coroutine function returning ``{item_key: payload}`` for one partition.
        ttl: Seconds a refresh stays fresh.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        name: str,
        partitions: Iterable[Any],
        loader: PartitionLoader,
        ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.partitions: List[Any] = list(partitions)
        self._loader = loader
        self._cache: TTLCache[Any, Dict[str, V]] = TTLCache(ttl=ttl, clock=clock)
        self._clock = clock
        self._inflight: Optional[asyncio.Task] = None
        self.refresh_count = 0
        self.last_refreshed: Optional[float] = None

    @property
    def ttl(self) -> float:
        return self._cache.ttl

    async def lookup(self, partition: Any, key: str) -> Optional[V]:
        """Return the cached payload for ``key`` within ``partition``.

        Returns None (with a warning) when the item is absent from a
        successful refresh. Refresh errors propagate to the caller.
        """
        if partition not in self.partitions:
            logger.warning("%s: partition %s is not configured", self.name, partition)
            return None

        items = self._cache.get(partition)
        if items is None:
            await self.refresh()
            items = self._cache.get(partition) or {}

        payload = items.get(key)
        if payload is None:
            logger.warning("%s: %s not found in batch data for partition %s", self.name, key, partition)
        return payload

    async def refresh(self) -> None:
        """Reload all partitions, sharing one in-flight task between callers."""
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._load_all())
            self._inflight.add_done_callback(self._release_inflight)
        await asyncio.shield(self._inflight)

    def _release_inflight(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _load_all(self) -> None:
        logger.info("%s: fetching %d partitions in batch", self.name, len(self.partitions))
        results = await asyncio.gather(*(self._loader(p) for p in self.partitions))

        self._cache.clear()
        total = 0
        for partition, items in zip(self.partitions, results):
            self._cache.set(partition, items)
            total += len(items)
            logger.info("%s: cached %d items for partition %s", self.name, len(items), partition)

        self.refresh_count += 1
        self.last_refreshed = self._clock()
        logger.info("%s: total items cached: %d", self.name, total)

    def invalidate(self, partition: Any) -> bool:
        return self._cache.invalidate(partition)

    def clear(self) -> int:
        return self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        age = None
        if self.last_refreshed is not None:
            age = self._clock() - self.last_refreshed
        return {
            "name": self.name,
            "partitions": self.partitions,
            "cached_partitions": len(self._cache),
            "ttl_seconds": self.ttl,
            "refresh_count": self.refresh_count,
            "age_seconds": age,
            "hits": self._cache.hits,
            "misses": self._cache.misses,
            "refreshing": self._inflight is not None and not self._inflight.done(),
        }
