"""create_activity_sync_tables

Revision ID: 5b7e2c4a9d10
Revises:
Create Date: 2026-10-18 10:12:41.318204

Creates activities, selected_repositories, connections and
activity_cache_entries. user_id columns hold the gateway's opaque user id,
so there are no foreign keys to a local users table.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5b7e2c4a9d10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        sa.Uuid(),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # 1. activities
    op.create_table(
        "activities",
        _id_column(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the provider event happened (not when it was fetched)",
        ),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activities_id", "activities", ["id"])
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index(
        "ix_activities_user_source_external_id",
        "activities",
        ["user_id", "source", "external_id"],
        unique=True,
    )
    op.create_index("ix_activities_user_timestamp", "activities", ["user_id", "timestamp"])

    # 2. selected_repositories
    op.create_table(
        "selected_repositories",
        _id_column(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column(
            "repo_id",
            sa.BigInteger(),
            nullable=False,
            comment="GitHub numeric repository id",
        ),
        sa.Column("repo_name", sa.String(length=500), nullable=False, comment="owner/name"),
        sa.Column("repo_owner", sa.String(length=255), nullable=False),
        sa.Column("repo_url", sa.String(length=500), nullable=False),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_selected_repositories_id", "selected_repositories", ["id"])
    op.create_index("ix_selected_repositories_user_id", "selected_repositories", ["user_id"])
    op.create_index(
        "ix_selected_repositories_user_repo",
        "selected_repositories",
        ["user_id", "repo_id"],
        unique=True,
    )

    # 3. connections
    op.create_table(
        "connections",
        _id_column(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=20), nullable=False),
        sa.Column("access_token", sa.String(), nullable=False),
        sa.Column("refresh_token", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_connections_id", "connections", ["id"])
    op.create_index("ix_connections_user_id", "connections", ["user_id"])
    op.create_index(
        "ix_connections_user_provider",
        "connections",
        ["user_id", "provider"],
        unique=True,
    )

    # 4. activity_cache_entries
    op.create_table(
        "activity_cache_entries",
        _id_column(),
        sa.Column("cache_key", sa.String(length=500), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=20), nullable=False),
        sa.Column("scope", sa.String(length=50), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("cache_key"),
    )
    op.create_index("ix_activity_cache_entries_id", "activity_cache_entries", ["id"])
    op.create_index("ix_activity_cache_entries_user_id", "activity_cache_entries", ["user_id"])
    op.create_index(
        "ix_activity_cache_entries_expires_at",
        "activity_cache_entries",
        ["expires_at"],
    )


def downgrade() -> None:
    op.drop_table("activity_cache_entries")
    op.drop_table("connections")
    op.drop_table("selected_repositories")
    op.drop_table("activities")
