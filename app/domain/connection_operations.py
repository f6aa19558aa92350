"""Domain operations for provider connections (OAuth credentials)."""

from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.encryption import token_encryption
from app.models.connection import Connection


class ConnectionOperations:
    """
    Operations for Connection rows.

    Note: Sync only reads connections. Writes happen on OAuth completion
    (upsert) and on disconnect (delete).
    """

    def __init__(self) -> None:
        self.model = Connection

    async def get_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        provider: str,
    ) -> Connection | None:
        statement = select(Connection).where(
            Connection.user_id == user_id,
            Connection.provider == provider,
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    def get_access_token(self, connection: Connection) -> str:
        """Decrypted access token for a connection."""
        return token_encryption.decrypt(connection.access_token)

    async def upsert(
        self,
        db: AsyncSession,
        user_id: str,
        provider: str,
        access_token: str,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> Connection:
        """Store credentials, replacing any existing connection for (user, provider)."""
        values = {
            "user_id": user_id,
            "provider": provider,
            "access_token": token_encryption.encrypt(access_token),
            "refresh_token": token_encryption.encrypt(refresh_token) if refresh_token else None,
            "expires_at": expires_at,
        }
        stmt = insert(Connection).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "provider"],
            set_={
                "access_token": stmt.excluded.access_token,
                "refresh_token": stmt.excluded.refresh_token,
                "expires_at": stmt.excluded.expires_at,
                "updated_at": datetime.now(UTC),
            },
        ).returning(Connection)

        result = await db.execute(stmt)
        await db.flush()
        return result.scalar_one()

    async def delete_for_user(self, db: AsyncSession, user_id: str, provider: str) -> int:
        statement = delete(Connection).where(
            Connection.user_id == user_id,
            Connection.provider == provider,
        )
        result = await db.execute(statement)
        await db.flush()
        return result.rowcount or 0

    async def list_user_ids(self, db: AsyncSession, provider: str) -> list[str]:
        """All users with a connection to the provider (scheduled sync roster)."""
        statement = (
            select(Connection.user_id)
            .where(Connection.provider == provider)
            .order_by(Connection.created_at)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())


connection_ops = ConnectionOperations()
