"""Provider credential records (one per user and provider)."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index
from sqlmodel import Field

from app.models.base import TimestampMixin, UserOwnedMixin, UUIDMixin


class Connection(UUIDMixin, TimestampMixin, UserOwnedMixin, table=True):
    """OAuth connection to a provider.

    Tokens are stored encrypted (see app.core.encryption). Sync only reads
    this row; it is written on OAuth completion and deleted on disconnect.
    """

    __tablename__ = "connections"
    __table_args__ = (
        Index("ix_connections_user_provider", "user_id", "provider", unique=True),
    )

    provider: str = Field(max_length=20, nullable=False)
    access_token: str = Field(nullable=False)
    refresh_token: str | None = Field(default=None)
    expires_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        """True if the token has a known expiry that has passed."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))
