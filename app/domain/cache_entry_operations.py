"""Domain operations for the durable GitHub response cache."""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity_cache_entry import ActivityCacheEntry


class CacheEntryOperations:
    """
    Operations for ActivityCacheEntry.

    Note: This doesn't extend BaseOperations because entries are keyed by
    cache_key and only ever touched by the cache store.
    """

    def __init__(self) -> None:
        self.model = ActivityCacheEntry

    async def get_by_key(self, db: AsyncSession, cache_key: str) -> ActivityCacheEntry | None:
        statement = select(ActivityCacheEntry).where(ActivityCacheEntry.cache_key == cache_key)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        db: AsyncSession,
        *,
        cache_key: str,
        user_id: str,
        provider: str,
        scope: str,
        payload: Any,
        captured_at: datetime,
        expires_at: datetime,
    ) -> None:
        """Write an entry; concurrent writers for the same key are last-writer-wins."""
        stmt = insert(ActivityCacheEntry).values(
            cache_key=cache_key,
            user_id=user_id,
            provider=provider,
            scope=scope,
            payload=payload,
            captured_at=captured_at,
            expires_at=expires_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["cache_key"],
            set_={
                "payload": stmt.excluded.payload,
                "captured_at": stmt.excluded.captured_at,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        await db.execute(stmt)
        await db.flush()

    async def delete_by_key(self, db: AsyncSession, cache_key: str) -> int:
        statement = delete(ActivityCacheEntry).where(ActivityCacheEntry.cache_key == cache_key)
        result = await db.execute(statement)
        return result.rowcount or 0

    async def delete_for_user(self, db: AsyncSession, user_id: str) -> int:
        statement = delete(ActivityCacheEntry).where(ActivityCacheEntry.user_id == user_id)
        result = await db.execute(statement)
        return result.rowcount or 0

    async def delete_all(self, db: AsyncSession) -> int:
        result = await db.execute(delete(ActivityCacheEntry))
        return result.rowcount or 0

    async def delete_expired(self, db: AsyncSession, now: datetime) -> int:
        """Remove entries whose TTL lapsed. Safe to run concurrently and repeatedly."""
        statement = delete(ActivityCacheEntry).where(ActivityCacheEntry.expires_at <= now)
        result = await db.execute(statement)
        return result.rowcount or 0


cache_entry_ops = CacheEntryOperations()
