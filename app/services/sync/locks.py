"""Per-user sync exclusion within one process."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class UserSyncLocks:
    """
    One asyncio.Lock per user with a sync in flight.

    hold() never waits: if the user's lock is taken it yields False and the
    caller reports the sync as already in progress. Locks are dropped once
    released, so the registry only holds users currently syncing.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def is_locked(self, user_id: str) -> bool:
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[bool]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        if lock.locked():
            yield False
            return

        # Uncontended acquire completes without suspending
        await lock.acquire()
        try:
            yield True
        finally:
            lock.release()
            if self._locks.get(user_id) is lock:
                del self._locks[user_id]
