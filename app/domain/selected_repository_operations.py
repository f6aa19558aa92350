"""Domain operations for the user's selected repositories."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.base_operations import BaseOperations
from app.models.selected_repository import SelectedRepository


class SelectedRepositoryOperations(BaseOperations[SelectedRepository]):
    """CRUD for SelectedRepository, unique per (user_id, repo_id)."""

    def __init__(self) -> None:
        super().__init__(SelectedRepository)

    async def list_for_user(self, db: AsyncSession, user_id: str) -> list[SelectedRepository]:
        statement = (
            select(SelectedRepository)
            .where(SelectedRepository.user_id == user_id)
            .order_by(SelectedRepository.repo_name)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_repo_ids(self, db: AsyncSession, user_id: str) -> set[int]:
        """Return the allow-list of GitHub repository ids for a user."""
        statement = select(SelectedRepository.repo_id).where(
            SelectedRepository.user_id == user_id
        )
        result = await db.execute(statement)
        return set(result.scalars().all())

    async def upsert(
        self,
        db: AsyncSession,
        user_id: str,
        obj_in: dict[str, Any],
    ) -> SelectedRepository:
        """
        Select a repository, or refresh its display metadata if already selected.

        Args:
            obj_in: Keys repo_id, repo_name, repo_owner, repo_url, is_private
        """
        values = {
            "user_id": user_id,
            "repo_id": obj_in["repo_id"],
            "repo_name": obj_in["repo_name"],
            "repo_owner": obj_in["repo_owner"],
            "repo_url": obj_in["repo_url"],
            "is_private": obj_in.get("is_private", False),
        }
        stmt = insert(SelectedRepository).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "repo_id"],
            set_={
                "repo_name": stmt.excluded.repo_name,
                "repo_owner": stmt.excluded.repo_owner,
                "repo_url": stmt.excluded.repo_url,
                "is_private": stmt.excluded.is_private,
                "updated_at": datetime.now(UTC),
            },
        ).returning(SelectedRepository)

        result = await db.execute(stmt)
        await db.flush()
        return result.scalar_one()

    async def remove(
        self,
        db: AsyncSession,
        user_id: str,
        repo_id: int,
    ) -> SelectedRepository | None:
        """Deselect a repository. Returns the removed row, or None if it wasn't selected."""
        statement = (
            delete(SelectedRepository)
            .where(
                SelectedRepository.user_id == user_id,
                SelectedRepository.repo_id == repo_id,
            )
            .returning(SelectedRepository)
        )
        result = await db.execute(statement)
        await db.flush()
        return result.scalar_one_or_none()


selected_repository_ops = SelectedRepositoryOperations()
