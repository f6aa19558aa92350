"""Repositories a user has opted into tracking."""

from sqlalchemy import BigInteger, Index
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, UserOwnedMixin, UUIDMixin


class SelectedRepositoryBase(SQLModel):
    """Display metadata captured when the repository was selected."""

    repo_id: int = Field(
        sa_type=BigInteger, nullable=False, description="GitHub numeric repository id"
    )
    repo_name: str = Field(max_length=500, nullable=False, description="owner/name")
    repo_owner: str = Field(max_length=255, nullable=False)
    repo_url: str = Field(max_length=500, nullable=False)
    is_private: bool = Field(default=False, nullable=False)


class SelectedRepositoryCreate(SelectedRepositoryBase):
    """Schema for selecting a repository."""


class SelectedRepository(
    SelectedRepositoryBase, UUIDMixin, TimestampMixin, UserOwnedMixin, table=True
):
    """A repository whose events are eligible for sync."""

    __tablename__ = "selected_repositories"
    __table_args__ = (
        Index(
            "ix_selected_repositories_user_repo",
            "user_id",
            "repo_id",
            unique=True,
        ),
    )
