"""Activity model: one normalized provider event per (user, source, external id)."""

import uuid as uuid_pkg
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel
from sqlalchemy import Column, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, UserOwnedMixin, UUIDMixin


class ActivitySource(str, Enum):
    """Provider an activity was synced from. Only GitHub is synced today."""

    GITHUB = "github"
    SLACK = "slack"
    NOTION = "notion"


class ActivityBase(SQLModel):
    """Fields shared by the table model and API responses."""

    source: str = Field(max_length=20, nullable=False)
    title: str = Field(max_length=500, nullable=False)
    description: str | None = Field(default=None)
    timestamp: datetime = Field(  # type: ignore[call-overload]
        nullable=False,
        sa_type=DateTime(timezone=True),
        description="When the provider event happened (not when it was fetched)",
    )
    external_id: str = Field(max_length=255, nullable=False)


class Activity(ActivityBase, UUIDMixin, TimestampMixin, UserOwnedMixin, table=True):
    """Stored activity record.

    `metadata` is reserved on SQLAlchemy declarative classes, so the JSONB
    column is exposed as `event_metadata`.
    """

    __tablename__ = "activities"
    __table_args__ = (
        Index(
            "ix_activities_user_source_external_id",
            "user_id",
            "source",
            "external_id",
            unique=True,
        ),
        Index("ix_activities_user_timestamp", "user_id", "timestamp"),
    )

    event_metadata: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column("metadata", JSONB, nullable=True),
    )


class ActivityRead(BaseModel):
    """Activity as returned by the API (plain pydantic: `metadata` is reserved on SQLModel)."""

    id: uuid_pkg.UUID
    source: str
    title: str
    description: str | None = None
    timestamp: datetime
    external_id: str
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None

    @classmethod
    def from_activity(cls, activity: Activity) -> "ActivityRead":
        return cls(
            id=activity.id,
            source=activity.source,
            title=activity.title,
            description=activity.description,
            timestamp=activity.timestamp,
            external_id=activity.external_id,
            metadata=activity.event_metadata,
            created_at=activity.created_at,
        )
