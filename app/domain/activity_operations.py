"""Domain operations for stored activities."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.base_operations import BaseOperations
from app.models.activity import Activity


class ActivityOperations(BaseOperations[Activity]):
    """Reads and upserts for Activity rows.

    Rows are unique per (user_id, source, external_id); re-syncing the same
    provider event updates the row in place.
    """

    def __init__(self) -> None:
        super().__init__(Activity)

    async def get_recent(
        self,
        db: AsyncSession,
        user_id: str,
        source: str | None = None,
        limit: int = 20,
    ) -> list[Activity]:
        """Most recent activities for a user, newest event first."""
        statement = select(Activity).where(Activity.user_id == user_id)
        if source:
            statement = statement.where(Activity.source == source)
        statement = statement.order_by(Activity.timestamp.desc()).limit(limit)

        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_by_external_ids(
        self,
        db: AsyncSession,
        user_id: str,
        source: str,
        external_ids: list[str],
    ) -> dict[str, Activity]:
        """
        Bulk fetch stored activities for a set of provider event ids.

        Returns:
            Dict mapping external_id -> Activity. Unknown ids are absent.
        """
        if not external_ids:
            return {}

        statement = select(Activity).where(
            Activity.user_id == user_id,
            Activity.source == source,
            Activity.external_id.in_(external_ids),  # type: ignore[attr-defined]
        )
        result = await db.execute(statement)
        return {row.external_id: row for row in result.scalars().all()}

    async def upsert(
        self,
        db: AsyncSession,
        user_id: str,
        data: dict[str, Any],
    ) -> None:
        """
        Insert or update one activity inside its own SAVEPOINT.

        A failure rolls back only this row; rows written earlier in the
        same transaction are untouched.

        Args:
            data: Keys source, external_id, title, description, timestamp, metadata
        """
        now = datetime.now(UTC)
        values = {
            "user_id": user_id,
            "source": data["source"],
            "external_id": data["external_id"],
            "title": data["title"],
            "description": data.get("description"),
            "timestamp": data["timestamp"],
            "metadata": data.get("metadata"),
        }
        stmt = insert(Activity.__table__).values(**values)  # type: ignore[attr-defined]
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "source", "external_id"],
            set_={
                "title": stmt.excluded.title,
                "description": stmt.excluded.description,
                "timestamp": stmt.excluded.timestamp,
                "metadata": stmt.excluded["metadata"],
                "updated_at": now,
            },
        )

        async with db.begin_nested():
            await db.execute(stmt)

    async def count_for_source(self, db: AsyncSession, user_id: str, source: str) -> int:
        statement = select(func.count(Activity.id)).where(
            Activity.user_id == user_id,
            Activity.source == source,
        )
        result = await db.execute(statement)
        return result.scalar() or 0

    async def delete_for_source(self, db: AsyncSession, user_id: str, source: str) -> int:
        """Remove a user's activities from one provider (used on disconnect)."""
        statement = delete(Activity).where(
            Activity.user_id == user_id,
            Activity.source == source,
        )
        result = await db.execute(statement)
        await db.flush()
        return result.rowcount or 0


activity_ops = ActivityOperations()
