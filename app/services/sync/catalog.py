"""Cached list of the repositories a user can select."""

import logging
from collections.abc import Callable
from dataclasses import asdict
from typing import Protocol

from app.config import settings
from app.services.cache import REPOSITORIES_SCOPE, ActivityCacheStore, CacheKey
from app.services.github import GitHubActivitySource, GitHubRepo

logger = logging.getLogger(__name__)

PROVIDER = "github"


class RepositorySource(Protocol):
    async def list_repositories(self, per_page: int = 100) -> list[GitHubRepo]: ...


class RepositoryCatalog:
    """
    Repository picker backed by the cache store.

    GitHub errors propagate unchanged; the caller maps them to a response.
    """

    def __init__(
        self,
        cache: ActivityCacheStore,
        source_factory: Callable[[str], RepositorySource] = GitHubActivitySource,
        ttl_seconds: float | None = None,
    ):
        self._cache = cache
        self._source_factory = source_factory
        self._ttl = ttl_seconds or settings.repository_cache_ttl_seconds

    def key(self, user_id: str) -> CacheKey:
        return CacheKey.build(user_id, PROVIDER, REPOSITORIES_SCOPE, per_page=100)

    async def list_repositories(
        self,
        user_id: str,
        token: str,
        force_refresh: bool = False,
    ) -> tuple[list[GitHubRepo], bool]:
        """Return (repositories, served_from_cache)."""
        key = self.key(user_id)
        if force_refresh:
            await self._cache.invalidate(key)
        else:
            lookup = await self._cache.get(key)
            if lookup.hit:
                return [GitHubRepo(**item) for item in lookup.value], True

        repos = await self._source_factory(token).list_repositories()
        await self._cache.put(key, [asdict(r) for r in repos], self._ttl)
        logger.info(f"Fetched {len(repos)} repositories for user {user_id}")
        return repos, False
