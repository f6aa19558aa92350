"""Durable tier of the GitHub response cache."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Column, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field

from app.models.base import UUIDMixin


class ActivityCacheEntry(UUIDMixin, table=True):
    """
    Cached provider response shared across processes.

    The stored captured_at/expires_at are authoritative: when an entry is
    promoted into a process-local cache, its remaining lifetime is computed
    from these columns, not from the local clock at promotion time.
    """

    __tablename__ = "activity_cache_entries"
    __table_args__ = (
        Index("ix_activity_cache_entries_expires_at", "expires_at"),
    )

    cache_key: str = Field(max_length=500, nullable=False, unique=True)
    user_id: str = Field(max_length=255, nullable=False, index=True)
    provider: str = Field(max_length=20, nullable=False)
    scope: str = Field(max_length=50, nullable=False)

    payload: Any = Field(sa_column=Column(JSONB, nullable=False))

    captured_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
    )
    expires_at: datetime = Field(  # type: ignore[call-overload]
        nullable=False,
        sa_type=DateTime(timezone=True),
    )
