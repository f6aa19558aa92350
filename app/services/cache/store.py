"""
Two-tier cache for GitHub responses.

Tier 1 is a process-local cachetools.TLRUCache; tier 2 is a database table
shared by every process. Reads check memory first, then the database; a
database hit is promoted into memory for the rest of its original lifetime.

Durable-tier failures never block callers: reads degrade to a miss and
writes degrade to memory-only, and both set the `degraded` indicator so the
sync can report it.

TTLs are wall-clock seconds. The durable tier's captured_at is authoritative;
skew between processes is not corrected.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

from cachetools import TLRUCache

from app.services.cache.keys import CacheKey

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value plus when it was captured and for how long it is valid."""

    key: str
    user_id: str
    provider: str
    scope: str
    value: Any
    captured_at: float  # Unix seconds
    ttl_seconds: float

    @property
    def expires_at(self) -> float:
        return self.captured_at + self.ttl_seconds

    def is_valid(self, now: float) -> bool:
        return now - self.captured_at < self.ttl_seconds


class CacheTier(str, Enum):
    MEMORY = "memory"
    DURABLE = "durable"


@dataclass
class CacheLookup:
    """Result of CacheStore.get(): an entry (or miss), where it came from, and
    whether the durable tier was unreachable during the lookup."""

    entry: CacheEntry | None
    tier: CacheTier | None = None
    degraded: bool = False

    @property
    def hit(self) -> bool:
        return self.entry is not None

    @property
    def value(self) -> Any:
        return self.entry.value if self.entry else None


@dataclass
class CacheStats:
    hit_rate: float
    entry_count: int
    memory_hits: int
    durable_hits: int
    misses: int
    degraded_events: int
    last_sweep_at: datetime | None
    last_sweep_removed: int


class DurableCacheTier(Protocol):
    """Storage behind the memory tier (see DatabaseCacheTier)."""

    async def read(self, key: str) -> CacheEntry | None: ...

    async def write(self, entry: CacheEntry) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def delete_for_user(self, user_id: str) -> int: ...

    async def delete_all(self) -> int: ...

    async def delete_expired(self, now: float) -> int: ...


def _time_to_use(_key: str, entry: CacheEntry, _now: float) -> float:
    return entry.expires_at


class ActivityCacheStore:
    """
    Cache-aside store for provider responses.

    The store is the only writer of cache entries. It holds no locks: the
    memory tier is last-writer-wins and the durable tier upserts by key.
    """

    def __init__(
        self,
        durable: DurableCacheTier,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.time,
    ):
        self._durable = durable
        self._timer = timer
        self._memory: TLRUCache[str, CacheEntry] = TLRUCache(
            maxsize=maxsize, ttu=_time_to_use, timer=timer
        )

        self._memory_hits = 0
        self._durable_hits = 0
        self._misses = 0
        self._degraded_events = 0
        self._last_sweep_at: datetime | None = None
        self._last_sweep_removed = 0

    def _degrade(self, operation: str, key: str, exc: Exception) -> None:
        self._degraded_events += 1
        logger.warning(f"Durable cache {operation} failed for {key}, continuing without it: {exc}")

    async def get(self, key: CacheKey) -> CacheLookup:
        """Look up a key in memory, then in the durable tier (promoting on hit)."""
        rendered = key.render()

        entry = self._memory.get(rendered)
        if entry is not None:
            self._memory_hits += 1
            logger.debug(f"Cache HIT (memory): {rendered}")
            return CacheLookup(entry, CacheTier.MEMORY)

        try:
            entry = await self._durable.read(rendered)
        except Exception as e:
            self._degrade("read", rendered, e)
            self._misses += 1
            return CacheLookup(None, degraded=True)

        if entry is None or not entry.is_valid(self._timer()):
            self._misses += 1
            logger.debug(f"Cache MISS: {rendered}")
            return CacheLookup(None)

        self._memory[rendered] = entry
        self._durable_hits += 1
        logger.debug(f"Cache HIT (durable, promoted): {rendered}")
        return CacheLookup(entry, CacheTier.DURABLE)

    async def put(self, key: CacheKey, value: Any, ttl_seconds: float) -> bool:
        """
        Store a value in both tiers.

        The memory write is immediately visible. Returns False if the durable
        write failed (the value is then cached for this process only).
        """
        rendered = key.render()
        entry = CacheEntry(
            key=rendered,
            user_id=key.user_id,
            provider=key.provider,
            scope=key.scope,
            value=value,
            captured_at=self._timer(),
            ttl_seconds=ttl_seconds,
        )
        self._memory[rendered] = entry

        try:
            await self._durable.write(entry)
        except Exception as e:
            self._degrade("write", rendered, e)
            return False
        return True

    async def invalidate(self, key: CacheKey) -> bool:
        """Drop one key from both tiers. Returns False if the durable delete failed."""
        rendered = key.render()
        self._memory.pop(rendered, None)

        try:
            await self._durable.delete(rendered)
        except Exception as e:
            self._degrade("delete", rendered, e)
            return False
        return True

    async def invalidate_all(self, user_id: str) -> bool:
        """Drop every entry belonging to a user (disconnect, explicit clear)."""
        for rendered in [k for k, e in list(self._memory.items()) if e.user_id == user_id]:
            self._memory.pop(rendered, None)

        try:
            removed = await self._durable.delete_for_user(user_id)
        except Exception as e:
            self._degrade("user delete", user_id, e)
            return False

        logger.info(f"Invalidated cache for user {user_id} ({removed} durable entries)")
        return True

    def clear_memory(self) -> None:
        self._memory.clear()
        logger.debug("Cleared memory cache")

    async def clear_durable(self) -> int:
        """Remove every durable entry for every user."""
        removed = await self._durable.delete_all()
        logger.info(f"Cleared durable cache ({removed} entries)")
        return removed

    async def sweep_expired(self) -> int:
        """
        Remove expired entries from both tiers.

        Idempotent; concurrent or repeated sweeps just find nothing to remove.
        Returns the number of durable entries removed.
        """
        self._memory.expire()
        removed = await self._durable.delete_expired(self._timer())

        self._last_sweep_at = datetime.now(UTC)
        self._last_sweep_removed = removed
        logger.info(f"Cache sweep removed {removed} expired entries")
        return removed

    def stats(self) -> CacheStats:
        """Snapshot of hit rate and size for monitoring."""
        self._memory.expire()
        lookups = self._memory_hits + self._durable_hits + self._misses
        hits = self._memory_hits + self._durable_hits
        return CacheStats(
            hit_rate=round(hits / lookups, 4) if lookups else 0.0,
            entry_count=len(self._memory),
            memory_hits=self._memory_hits,
            durable_hits=self._durable_hits,
            misses=self._misses,
            degraded_events=self._degraded_events,
            last_sweep_at=self._last_sweep_at,
            last_sweep_removed=self._last_sweep_removed,
        )
