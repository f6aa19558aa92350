"""Data types for GitHub API responses."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class EventActor:
    login: str
    avatar_url: str | None = None
    display_login: str | None = None

    @property
    def name(self) -> str:
        return self.display_login or self.login


@dataclass
class EventRepo:
    id: int
    name: str  # owner/name


@dataclass
class ProviderEvent:
    """One entry from the GitHub events API, before normalization."""

    id: str
    type: str
    actor: EventActor
    repo: EventRepo
    created_at: str  # ISO 8601 from GitHub
    payload: dict[str, Any] = field(default_factory=dict)
    public: bool = True

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ProviderEvent":
        actor = data.get("actor") or {}
        repo = data.get("repo") or {}
        return cls(
            id=str(data["id"]),
            type=data.get("type") or "UnknownEvent",
            actor=EventActor(
                login=actor.get("login", ""),
                avatar_url=actor.get("avatar_url"),
                display_login=actor.get("display_login"),
            ),
            repo=EventRepo(id=int(repo.get("id", 0)), name=repo.get("name", "")),
            created_at=data.get("created_at", ""),
            payload=data.get("payload") or {},
            public=data.get("public", True),
        )


@dataclass
class EventFetchResult:
    """Events returned by the adapter plus how they were obtained."""

    events: list[ProviderEvent]
    used_fallback: bool = False
    rate_limit_remaining: int | None = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class NormalizedActivity:
    """Provider-neutral activity ready to be upserted."""

    source: str
    title: str
    description: str | None
    timestamp: datetime
    external_id: str
    metadata: dict[str, Any]

    @property
    def repo_id(self) -> int | None:
        repo = self.metadata.get("repo") or {}
        return repo.get("id")

    def to_record(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "external_id": self.external_id,
            "title": self.title,
            "description": self.description,
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }

    def to_cache(self) -> dict[str, Any]:
        """JSON-safe form for the cache tiers."""
        data = self.to_record()
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_cache(cls, data: dict[str, Any]) -> "NormalizedActivity":
        return cls(
            source=data["source"],
            title=data["title"],
            description=data.get("description"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            external_id=data["external_id"],
            metadata=data.get("metadata") or {},
        )


@dataclass
class GitHubRepo:
    """Normalized GitHub repository data for the repository picker."""

    github_id: int
    full_name: str
    owner: str
    url: str
    description: str | None
    is_private: bool
    updated_at: str | None
    language: str | None
    stars_count: int = 0
