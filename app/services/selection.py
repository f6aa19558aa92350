"""Repository selection: which repositories may contribute activities."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.selected_repository_operations import (
    SelectedRepositoryOperations,
    selected_repository_ops,
)
from app.models.selected_repository import SelectedRepository
from app.services.github.types import NormalizedActivity
from app.services.notifications import REPOSITORY_UPDATE, NotificationSink, safe_publish

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryAllowList:
    """Snapshot of a user's selected repository ids, loaded once per sync."""

    repo_ids: frozenset[int]

    def __len__(self) -> int:
        return len(self.repo_ids)

    def is_eligible(self, repo_id: int | None) -> bool:
        return repo_id is not None and repo_id in self.repo_ids

    def filter(self, activities: Iterable[NormalizedActivity]) -> list[NormalizedActivity]:
        return [a for a in activities if self.is_eligible(a.repo_id)]


class SelectionFilter:
    """Maintains the allow-list and announces changes to live subscribers."""

    def __init__(
        self,
        sink: NotificationSink,
        repositories: SelectedRepositoryOperations = selected_repository_ops,
    ):
        self._sink = sink
        self._repositories = repositories

    async def load(self, db: AsyncSession, user_id: str) -> RepositoryAllowList:
        return RepositoryAllowList(frozenset(await self._repositories.get_repo_ids(db, user_id)))

    async def is_eligible(self, db: AsyncSession, repo_id: int, user_id: str) -> bool:
        allow_list = await self.load(db, user_id)
        return allow_list.is_eligible(repo_id)

    async def count(self, db: AsyncSession, user_id: str) -> int:
        return await self._repositories.count_by_user(db, user_id)

    async def list_selected(self, db: AsyncSession, user_id: str) -> list[SelectedRepository]:
        return await self._repositories.list_for_user(db, user_id)

    async def add(
        self,
        db: AsyncSession,
        user_id: str,
        repo: dict[str, Any],
    ) -> SelectedRepository:
        """Select a repository; re-adding refreshes its display metadata."""
        selected = await self._repositories.upsert(db, user_id, repo)
        logger.info(f"User {user_id} selected repository {selected.repo_name}")
        await self._announce(user_id, "added", selected.repo_name)
        return selected

    async def remove(self, db: AsyncSession, user_id: str, repo_id: int) -> bool:
        """Deselect a repository. Removing one that isn't selected is a no-op."""
        removed = await self._repositories.remove(db, user_id, repo_id)
        if removed is None:
            return False

        logger.info(f"User {user_id} deselected repository {removed.repo_name}")
        await self._announce(user_id, "removed", removed.repo_name)
        return True

    async def clear(self, db: AsyncSession, user_id: str) -> int:
        """Drop the whole selection (disconnect). Not announced."""
        return await self._repositories.delete_all_for_user(db, user_id)

    async def _announce(self, user_id: str, action: str, repo_name: str) -> None:
        await safe_publish(
            self._sink,
            user_id,
            REPOSITORY_UPDATE,
            {
                "action": action,
                "repoName": repo_name,
                "message": f"Repository {repo_name} {action}",
            },
        )
