"""Two-tier (memory + database) cache for GitHub responses."""

from app.services.cache.durable import DatabaseCacheTier
from app.services.cache.keys import EVENTS_SCOPE, REPOSITORIES_SCOPE, CacheKey
from app.services.cache.store import (
    ActivityCacheStore,
    CacheEntry,
    CacheLookup,
    CacheStats,
    CacheTier,
    DurableCacheTier,
)

__all__ = [
    "ActivityCacheStore",
    "CacheEntry",
    "CacheKey",
    "CacheLookup",
    "CacheStats",
    "CacheTier",
    "DatabaseCacheTier",
    "DurableCacheTier",
    "EVENTS_SCOPE",
    "REPOSITORIES_SCOPE",
]
