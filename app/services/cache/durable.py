"""Database-backed durable cache tier."""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import session_scope
from app.domain.cache_entry_operations import CacheEntryOperations, cache_entry_ops
from app.services.cache.store import CacheEntry

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class DatabaseCacheTier:
    """
    Stores cache entries in activity_cache_entries.

    Each call opens its own short session so a cache failure can never
    poison the caller's transaction.
    """

    def __init__(
        self,
        session_factory: SessionFactory = session_scope,
        ops: CacheEntryOperations = cache_entry_ops,
    ):
        self._session_factory = session_factory
        self._ops = ops

    async def read(self, key: str) -> CacheEntry | None:
        async with self._session_factory() as db:
            row = await self._ops.get_by_key(db, key)

        if row is None:
            return None

        captured_at = row.captured_at.timestamp()
        return CacheEntry(
            key=row.cache_key,
            user_id=row.user_id,
            provider=row.provider,
            scope=row.scope,
            value=row.payload,
            captured_at=captured_at,
            ttl_seconds=row.expires_at.timestamp() - captured_at,
        )

    async def write(self, entry: CacheEntry) -> None:
        captured_at = datetime.fromtimestamp(entry.captured_at, tz=UTC)
        async with self._session_factory() as db:
            await self._ops.upsert(
                db,
                cache_key=entry.key,
                user_id=entry.user_id,
                provider=entry.provider,
                scope=entry.scope,
                payload=entry.value,
                captured_at=captured_at,
                expires_at=captured_at + timedelta(seconds=entry.ttl_seconds),
            )

    async def delete(self, key: str) -> None:
        async with self._session_factory() as db:
            await self._ops.delete_by_key(db, key)

    async def delete_for_user(self, user_id: str) -> int:
        async with self._session_factory() as db:
            return await self._ops.delete_for_user(db, user_id)

    async def delete_all(self) -> int:
        async with self._session_factory() as db:
            return await self._ops.delete_all(db)

    async def delete_expired(self, now: float) -> int:
        async with self._session_factory() as db:
            return await self._ops.delete_expired(db, datetime.fromtimestamp(now, tz=UTC))
