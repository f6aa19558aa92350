"""
Sync orchestrator: the single entry point for refreshing a user's GitHub activity.

One run walks ResolvingScope -> CacheCheck -> Fetching -> Deduplicating ->
Persisting -> Notifying. Every provider failure is converted into a
SyncResult here; nothing past this module sees a GitHubAPIError.

Callers own the database session and its transaction. Each activity upsert
runs in a SAVEPOINT, so a failing row never discards rows already written,
and a cancelled run keeps whatever it had persisted.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain.activity_operations import ActivityOperations, activity_ops
from app.domain.connection_operations import ConnectionOperations, connection_ops
from app.models.activity import Activity, ActivitySource
from app.services.cache import EVENTS_SCOPE, ActivityCacheStore, CacheKey
from app.services.github import (
    EventFetchResult,
    GitHubActivitySource,
    GitHubAPIError,
    GitHubAuthExpired,
    GitHubRateLimited,
    GitHubTimeout,
    GitHubTransientError,
    NormalizedActivity,
    normalize,
)
from app.services.notifications import (
    SYNC_COMPLETED,
    SYNC_FAILED,
    NotificationSink,
    safe_publish,
)
from app.services.selection import SelectionFilter
from app.services.sync.locks import UserSyncLocks
from app.services.sync.types import (
    BatchSyncReport,
    SyncAdvisory,
    SyncCounts,
    SyncErrorReason,
    SyncResult,
    SyncState,
    SyncStatus,
)

logger = logging.getLogger(__name__)

PROVIDER = ActivitySource.GITHUB.value

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class EventSource(Protocol):
    async def fetch_raw_events(self, limit: int | None = None) -> EventFetchResult: ...


def _same_content(stored: Activity, incoming: NormalizedActivity) -> bool:
    return (
        stored.title == incoming.title
        and stored.description == incoming.description
        and stored.timestamp == incoming.timestamp
        and (stored.event_metadata or {}) == incoming.metadata
    )


class _Run:
    """Mutable state of one sync run."""

    def __init__(self, user_id: str, started: float):
        self.user_id = user_id
        self.started = started
        self.state = SyncState.IDLE
        self.advisories: list[SyncAdvisory] = []

    def enter(self, state: SyncState) -> None:
        logger.debug(f"[sync] {self.user_id}: {self.state.value} -> {state.value}")
        self.state = state

    def advise(self, advisory: SyncAdvisory) -> None:
        if advisory not in self.advisories:
            self.advisories.append(advisory)


class SyncOrchestrator:
    """Coordinates the adapter, cache, selection filter, store and notifications."""

    def __init__(
        self,
        cache: ActivityCacheStore,
        sink: NotificationSink,
        selection: SelectionFilter,
        source_factory: Callable[[str], EventSource] = GitHubActivitySource,
        activities: ActivityOperations = activity_ops,
        connections: ConnectionOperations = connection_ops,
        locks: UserSyncLocks | None = None,
        *,
        page_size: int | None = None,
        fetch_timeout: float | None = None,
        retry_backoff: float | None = None,
        activity_ttl: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self._cache = cache
        self._sink = sink
        self._selection = selection
        self._source_factory = source_factory
        self._activities = activities
        self._connections = connections
        self._locks = locks or UserSyncLocks()

        self._page_size = page_size or settings.github_events_page_size
        self._fetch_timeout = fetch_timeout or settings.github_fetch_timeout_seconds
        self._retry_backoff = (
            retry_backoff if retry_backoff is not None else settings.sync_retry_backoff_seconds
        )
        self._activity_ttl = activity_ttl or settings.activity_cache_ttl_seconds
        self._sleep = sleep
        self._clock = clock
        self._wall_clock = wall_clock

    @property
    def locks(self) -> UserSyncLocks:
        return self._locks

    def events_key(self, user_id: str) -> CacheKey:
        return CacheKey.build(user_id, PROVIDER, EVENTS_SCOPE, per_page=self._page_size)

    async def run_sync(
        self,
        db: AsyncSession,
        user_id: str,
        force_refresh: bool = False,
    ) -> SyncResult:
        """
        Sync one user's GitHub activity into the store.

        Only one run per user is in flight at a time; a concurrent call
        returns immediately with status in_progress.
        """
        async with self._locks.hold(user_id) as acquired:
            if not acquired:
                logger.info(f"[sync] {user_id}: sync already in progress, skipping")
                return SyncResult(
                    status=SyncStatus.IN_PROGRESS,
                    message="A sync is already running for this account.",
                )
            return await self._run(db, user_id, force_refresh)

    async def _run(self, db: AsyncSession, user_id: str, force_refresh: bool) -> SyncResult:
        run = _Run(user_id, self._clock())

        # Resolving scope
        run.enter(SyncState.RESOLVING_SCOPE)
        connection = await self._connections.get_for_user(db, user_id, PROVIDER)
        if connection is None:
            return await self._fail(run, SyncResult.failure(SyncErrorReason.NOT_CONNECTED))
        if connection.is_expired():
            return await self._fail(run, SyncResult.failure(SyncErrorReason.AUTH_EXPIRED))

        allow_list = await self._selection.load(db, user_id)
        if not allow_list:
            logger.info(f"[sync] {user_id}: no repositories selected, nothing to sync")
            run.enter(SyncState.DONE)
            return self._finish(
                run,
                SyncResult(
                    status=SyncStatus.NO_RESOURCES,
                    message="No repositories selected. Choose repositories to track first.",
                ),
            )

        # Cache check
        run.enter(SyncState.CACHE_CHECK)
        key = self.events_key(user_id)
        if force_refresh:
            if not await self._cache.invalidate(key):
                run.advise(SyncAdvisory.CACHE_DEGRADED)

        lookup = await self._cache.get(key)
        if lookup.degraded:
            run.advise(SyncAdvisory.CACHE_DEGRADED)

        if lookup.hit:
            activities = [NormalizedActivity.from_cache(item) for item in lookup.value]
            logger.info(f"[sync] {user_id}: {len(activities)} activities from cache")
        else:
            # Fetching
            run.enter(SyncState.FETCHING)
            token = self._connections.get_access_token(connection)
            try:
                fetched = await self._fetch_with_retry(user_id, token)
            except GitHubRateLimited as e:
                return await self._rate_limited(db, run, e)
            except GitHubAuthExpired as e:
                logger.warning(f"[sync] {user_id}: GitHub rejected token: {e.message}")
                return await self._fail(run, SyncResult.failure(SyncErrorReason.AUTH_EXPIRED))
            except GitHubTimeout as e:
                logger.warning(f"[sync] {user_id}: {e.message}")
                return await self._fail(run, SyncResult.failure(SyncErrorReason.TIMEOUT))
            except GitHubTransientError as e:
                logger.warning(f"[sync] {user_id}: {e.message}")
                return await self._fail(
                    run, SyncResult.failure(SyncErrorReason.TRANSIENT_NETWORK)
                )
            except GitHubAPIError as e:
                logger.error(f"[sync] {user_id}: GitHub error ({e.status_code}): {e.message}")
                return await self._fail(run, SyncResult.failure(SyncErrorReason.PROVIDER_ERROR))

            if fetched.used_fallback:
                run.advise(SyncAdvisory.FALLBACK_STREAM)

            activities = [normalize(event, fetched.fetched_at) for event in fetched.events]
            stored = await self._cache.put(
                key, [a.to_cache() for a in activities], self._activity_ttl
            )
            if not stored:
                run.advise(SyncAdvisory.CACHE_DEGRADED)

        # Deduplicating
        run.enter(SyncState.DEDUPLICATING)
        eligible = {a.external_id: a for a in allow_list.filter(activities)}
        counts = SyncCounts(fetched=len(eligible))
        existing = await self._activities.get_by_external_ids(
            db, user_id, PROVIDER, list(eligible)
        )

        # Persisting
        run.enter(SyncState.PERSISTING)
        for external_id, activity in eligible.items():
            current = existing.get(external_id)
            if current is not None and _same_content(current, activity):
                counts.skipped += 1
                continue

            try:
                await self._activities.upsert(db, user_id, activity.to_record())
            except Exception as e:
                counts.failed += 1
                logger.error(f"[sync] {user_id}: failed to store activity {external_id}: {e}")
                continue

            if current is None:
                counts.new += 1
            else:
                counts.updated += 1

        # Notifying
        run.enter(SyncState.NOTIFYING)
        result = SyncResult(
            status=SyncStatus.OK,
            counts=counts,
            message=(
                f"Synced {counts.fetched} GitHub activities "
                f"from {len(allow_list)} selected repositories"
            ),
            cache_hit=lookup.hit,
            selected_repositories=len(allow_list),
        )
        result = self._finish(run, result)
        await self._notify_completed(user_id, result)

        run.enter(SyncState.DONE)
        logger.info(
            f"[sync] {user_id}: completed ({counts.fetched} eligible, {counts.new} new, "
            f"{counts.updated} updated, {counts.skipped} unchanged, {counts.failed} failed, "
            f"{result.elapsed_ms}ms{', cached' if result.cache_hit else ''})"
        )
        return result

    async def _fetch_with_retry(self, user_id: str, token: str) -> EventFetchResult:
        """Fetch events, retrying exactly once on a transient failure."""
        source = self._source_factory(token)
        attempt = 1
        while True:
            try:
                async with asyncio.timeout(self._fetch_timeout):
                    return await source.fetch_raw_events(self._page_size)
            except TimeoutError as e:
                error: GitHubTransientError = GitHubTimeout(
                    f"GitHub did not respond within {self._fetch_timeout}s"
                )
                error.__cause__ = e
            except GitHubTransientError as e:
                error = e

            if attempt >= 2:
                raise error

            logger.warning(
                f"[sync] {user_id}: transient GitHub failure ({error.message}), "
                f"retrying in {self._retry_backoff}s"
            )
            await self._sleep(self._retry_backoff)
            attempt += 1

    async def _rate_limited(
        self,
        db: AsyncSession,
        run: _Run,
        error: GitHubRateLimited,
    ) -> SyncResult:
        """Serve previously stored activities if there are any, otherwise fail."""
        retry_after = error.retry_after(self._wall_clock())
        stored = await self._activities.count_for_source(db, run.user_id, PROVIDER)

        if not stored:
            return await self._fail(
                run, SyncResult.failure(SyncErrorReason.RATE_LIMITED, retry_after)
            )

        logger.warning(
            f"[sync] {run.user_id}: rate limited, serving {stored} stored activities "
            f"(retry after {retry_after}s)"
        )
        run.advise(SyncAdvisory.SERVED_STALE)
        result = self._finish(
            run,
            SyncResult(
                status=SyncStatus.OK,
                message="GitHub rate limit reached. Showing previously synced activity.",
                retry_after=retry_after,
            ),
        )
        await self._notify_completed(run.user_id, result)
        run.enter(SyncState.DONE)
        return result

    async def _fail(self, run: _Run, result: SyncResult) -> SyncResult:
        run.enter(SyncState.FAILED)
        result = self._finish(run, result)
        reason = result.error_reason.value if result.error_reason else None
        logger.info(f"[sync] {run.user_id}: failed ({reason})")
        await safe_publish(
            self._sink,
            run.user_id,
            SYNC_FAILED,
            {
                "reason": reason,
                "message": result.message,
            },
        )
        return result

    def _finish(self, run: _Run, result: SyncResult) -> SyncResult:
        result.advisories = list(run.advisories)
        result.elapsed_ms = int((self._clock() - run.started) * 1000)
        return result

    async def _notify_completed(self, user_id: str, result: SyncResult) -> None:
        await safe_publish(
            self._sink,
            user_id,
            SYNC_COMPLETED,
            {
                "counts": {
                    "fetched": result.counts.fetched,
                    "new": result.counts.new,
                    "updated": result.counts.updated,
                    "skipped": result.counts.skipped,
                    "failed": result.counts.failed,
                },
                "elapsedMs": result.elapsed_ms,
                "selectedRepositories": result.selected_repositories,
                "message": result.message,
            },
        )

    async def run_for_all_users(self, session_factory: SessionFactory) -> BatchSyncReport:
        """
        Sync every user with a GitHub connection (scheduler / cron entry point).

        Each user gets their own session so one user's failure can't roll back
        another's rows.
        """
        start = self._clock()
        report = BatchSyncReport()

        async with session_factory() as db:
            user_ids = await self._connections.list_user_ids(db, PROVIDER)
        report.users = len(user_ids)
        logger.info(f"[sync] Scheduled sync for {report.users} connected users")

        for user_id in user_ids:
            try:
                async with session_factory() as db:
                    result = await self.run_sync(db, user_id)
            except Exception as e:
                error_msg = f"User {user_id}: {e}"
                logger.exception(f"[sync] {error_msg}")
                report.errors.append(error_msg)
                report.failed += 1
                continue

            if result.status == SyncStatus.OK:
                report.ok += 1
            elif result.status == SyncStatus.NO_RESOURCES:
                report.no_resources += 1
            elif result.status == SyncStatus.IN_PROGRESS:
                report.skipped_in_progress += 1
            else:
                report.failed += 1
                report.errors.append(f"User {user_id}: {result.message}")

        report.duration_seconds = round(self._clock() - start, 2)
        logger.info(
            f"[sync] Scheduled sync completed: {report.ok} ok, "
            f"{report.no_resources} without repositories, {report.failed} failed, "
            f"{report.skipped_in_progress} in progress ({report.duration_seconds}s)"
        )
        return report

    async def disconnect(self, db: AsyncSession, user_id: str) -> dict[str, int]:
        """
        Remove the GitHub connection and everything derived from it.

        Deletes the connection, the repository selection and all GitHub
        activities, then drops the user's cache entries.
        """
        connections = await self._connections.delete_for_user(db, user_id, PROVIDER)
        repositories = await self._selection.clear(db, user_id)
        activities = await self._activities.delete_for_source(db, user_id, PROVIDER)
        await self._cache.invalidate_all(user_id)

        logger.info(
            f"[sync] {user_id}: disconnected GitHub "
            f"({repositories} repositories, {activities} activities removed)"
        )
        return {
            "connections": connections,
            "repositories": repositories,
            "activities": activities,
        }
