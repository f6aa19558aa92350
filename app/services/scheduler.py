"""Internal task scheduler using APScheduler.

Runs the periodic GitHub sync and cache sweep within the FastAPI process.
Uses PostgreSQL advisory locks to prevent duplicate execution when
multiple instances are running.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import text

from app.config import settings
from app.core.database import direct_session_maker, session_scope

logger = logging.getLogger(__name__)

# Advisory lock IDs (arbitrary unique integers, one per job)
GITHUB_SYNC_LOCK_ID = 734101
CACHE_SWEEP_LOCK_ID = 734102


@asynccontextmanager
async def advisory_lock(lock_id: int) -> AsyncIterator[bool]:
    """
    Acquire a PostgreSQL advisory lock for the duration of the context.

    Advisory locks are session-level, so this uses the direct (non-pooled)
    connection. pg_try_advisory_lock() returns immediately: if another
    process holds the lock, we skip.
    """
    async with direct_session_maker() as session:
        result = await session.execute(
            text("SELECT pg_try_advisory_lock(:lock_id)"),
            {"lock_id": lock_id},
        )
        acquired = result.scalar()

        if not acquired:
            yield False
            return

        try:
            yield True
        finally:
            await session.execute(
                text("SELECT pg_advisory_unlock(:lock_id)"),
                {"lock_id": lock_id},
            )
            await session.commit()


async def run_github_sync() -> dict[str, Any] | None:
    """
    Sync every connected user with advisory lock protection.

    Returns the report dict if executed, None if skipped (lock held by another instance).
    """
    async with advisory_lock(GITHUB_SYNC_LOCK_ID) as acquired:
        if not acquired:
            logger.info("[scheduler] GitHub sync: skipped (another instance is running)")
            return None

        logger.info("[scheduler] GitHub sync: starting")

        try:
            from app.services.runtime import sync_orchestrator

            report = await sync_orchestrator.run_for_all_users(session_scope)

            logger.info(
                f"[scheduler] GitHub sync: completed "
                f"({report.users} users, {report.ok} ok, "
                f"{report.failed} failed, {report.duration_seconds}s)"
            )
            return asdict(report)

        except Exception as e:
            logger.exception(f"[scheduler] GitHub sync: failed with error: {e}")
            return None


async def run_cache_sweep() -> dict[str, Any] | None:
    """
    Remove expired cache entries with advisory lock protection.

    Returns {"removed": n} if executed, None if skipped or failed.
    """
    async with advisory_lock(CACHE_SWEEP_LOCK_ID) as acquired:
        if not acquired:
            logger.info("[scheduler] Cache sweep: skipped (another instance is running)")
            return None

        try:
            from app.services.runtime import cache_store

            removed = await cache_store.sweep_expired()
            logger.info(f"[scheduler] Cache sweep: removed {removed} expired entries")
            return {"removed": removed}

        except Exception as e:
            logger.exception(f"[scheduler] Cache sweep: failed with error: {e}")
            return None


class Scheduler:
    """Manages the APScheduler instance and job registration."""

    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start the scheduler and register jobs."""
        if not settings.scheduler_enabled:
            logger.info("[scheduler] Disabled via SCHEDULER_ENABLED=false")
            return

        self._scheduler = AsyncIOScheduler()

        self._scheduler.add_job(
            run_github_sync,
            trigger=IntervalTrigger(minutes=settings.sync_interval_minutes),
            id="github_sync",
            name="GitHub Activity Sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self._scheduler.add_job(
            run_cache_sweep,
            trigger=IntervalTrigger(minutes=settings.cache_sweep_interval_minutes),
            id="cache_sweep",
            name="Expired Cache Sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self._scheduler.start()
        logger.info(
            f"[scheduler] Started with GitHub sync every {settings.sync_interval_minutes}m, "
            f"cache sweep every {settings.cache_sweep_interval_minutes}m"
        )

    def stop(self) -> None:
        """Gracefully shut down the scheduler."""
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("[scheduler] Stopped")


scheduler = Scheduler()
