from typing import Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseOperations(Generic[ModelType]):
    """Base read/delete operations for user-owned models."""

    def __init__(self, model: type[ModelType]):
        self.model = model

    async def count_by_user(self, db: AsyncSession, user_id: str) -> int:
        """Count records owned by a user."""
        statement = select(func.count(self.model.id)).where(self.model.user_id == user_id)
        result = await db.execute(statement)
        return result.scalar() or 0

    async def delete_all_for_user(self, db: AsyncSession, user_id: str) -> int:
        """Delete every record owned by a user. Returns the number of rows removed."""
        statement = delete(self.model).where(self.model.user_id == user_id)
        result = await db.execute(statement)
        await db.flush()
        return result.rowcount or 0
