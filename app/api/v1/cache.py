"""Cache monitoring and manual invalidation."""

import logging
from datetime import datetime
from enum import Enum
from typing import Any

from fastapi import APIRouter, Header
from pydantic import BaseModel

from app.api.deps import CacheStore, CurrentUserId, check_cron_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"])


class ClearType(str, Enum):
    MEMORY = "memory"
    DATABASE = "database"
    USER = "user"
    ALL = "all"


class ClearRequest(BaseModel):
    type: ClearType = ClearType.USER


class CacheStatsResponse(BaseModel):
    hit_rate: float
    entry_count: int
    memory_hits: int
    durable_hits: int
    misses: int
    degraded_events: int
    last_sweep_at: datetime | None
    last_sweep_removed: int


@router.get("/stats", response_model=CacheStatsResponse)
async def get_cache_stats(
    _current_user_id: CurrentUserId,
    cache: CacheStore,
) -> CacheStatsResponse:
    """Hit rate and size of this process's cache."""
    stats = cache.stats()
    return CacheStatsResponse(
        hit_rate=stats.hit_rate,
        entry_count=stats.entry_count,
        memory_hits=stats.memory_hits,
        durable_hits=stats.durable_hits,
        misses=stats.misses,
        degraded_events=stats.degraded_events,
        last_sweep_at=stats.last_sweep_at,
        last_sweep_removed=stats.last_sweep_removed,
    )


@router.post("/clear")
async def clear_cache(
    data: ClearRequest,
    current_user_id: CurrentUserId,
    cache: CacheStore,
    x_cron_secret: str | None = Header(None),
) -> dict[str, Any]:
    """
    Clear cached GitHub responses.

    - memory: this process's memory tier
    - database: every durable entry
    - user: both tiers, caller's entries only
    - all: both tiers, every user

    database and all remove other users' entries, so they also need the
    X-Cron-Secret header.
    """
    if data.type in (ClearType.DATABASE, ClearType.ALL):
        check_cron_secret(x_cron_secret)

    removed: int | None = None

    if data.type in (ClearType.MEMORY, ClearType.ALL):
        cache.clear_memory()
    if data.type in (ClearType.DATABASE, ClearType.ALL):
        removed = await cache.clear_durable()
    if data.type == ClearType.USER:
        await cache.invalidate_all(current_user_id)

    logger.info(f"Cache cleared ({data.type.value}) by user {current_user_id}")
    return {"cleared": data.type.value, "durable_entries_removed": removed}
