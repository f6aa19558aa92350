"""
Typed GitHub event payloads and normalization into activities.

Each known event type parses into its own dataclass; anything else becomes
UnknownEvent carrying the raw payload, so normalize() is total and never
drops an event.
"""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.models.activity import ActivitySource
from app.services.github.types import NormalizedActivity, ProviderEvent

# Comment and review bodies are truncated to this many characters
BODY_PREVIEW_LENGTH = 100

# Last-resort timestamp when neither created_at nor a fetch time is known
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _preview(body: str | None) -> str | None:
    if not body:
        return None
    if len(body) > BODY_PREVIEW_LENGTH:
        return body[:BODY_PREVIEW_LENGTH] + "..."
    return body


def _verb(action: str | None) -> str:
    if action == "opened":
        return "Opened"
    if action == "closed":
        return "Closed"
    return action or "Updated"


@dataclass
class PushEvent:
    commit_messages: list[str] = field(default_factory=list)

    def render(self, repo: str) -> tuple[str, str | None]:
        count = len(self.commit_messages)
        title = f"Pushed {count} commit{'' if count == 1 else 's'} to {repo}"
        return title, self.commit_messages[0] if self.commit_messages else None


@dataclass
class PullRequestEvent:
    action: str | None
    number: int | None
    pr_title: str | None

    def render(self, repo: str) -> tuple[str, str | None]:
        return f"{_verb(self.action)} PR #{self.number} in {repo}", self.pr_title


@dataclass
class IssuesEvent:
    action: str | None
    number: int | None
    issue_title: str | None

    def render(self, repo: str) -> tuple[str, str | None]:
        return f"{_verb(self.action)} issue #{self.number} in {repo}", self.issue_title


@dataclass
class IssueCommentEvent:
    number: int | None
    body: str | None

    def render(self, repo: str) -> tuple[str, str | None]:
        return f"Commented on issue #{self.number} in {repo}", _preview(self.body)


@dataclass
class PullRequestReviewEvent:
    number: int | None
    body: str | None

    def render(self, repo: str) -> tuple[str, str | None]:
        return f"Reviewed PR #{self.number} in {repo}", _preview(self.body)


@dataclass
class CreateEvent:
    ref_type: str | None
    ref: str | None

    def render(self, repo: str) -> tuple[str, str | None]:
        ref = f" '{self.ref}'" if self.ref else ""
        return f"Created {self.ref_type}{ref} in {repo}", None


@dataclass
class DeleteEvent:
    ref_type: str | None
    ref: str | None

    def render(self, repo: str) -> tuple[str, str | None]:
        ref = f" '{self.ref}'" if self.ref else ""
        return f"Deleted {self.ref_type}{ref} in {repo}", None


@dataclass
class ForkEvent:
    forkee_full_name: str | None

    def render(self, repo: str) -> tuple[str, str | None]:
        return f"Forked {repo}", self.forkee_full_name


@dataclass
class WatchEvent:
    def render(self, repo: str) -> tuple[str, str | None]:
        return f"Starred {repo}", None


@dataclass
class ReleaseEvent:
    tag_name: str | None
    release_name: str | None

    def render(self, repo: str) -> tuple[str, str | None]:
        return f"Released {self.tag_name} in {repo}", self.release_name


@dataclass
class UnknownEvent:
    event_type: str
    raw_payload: dict[str, Any] = field(default_factory=dict)

    def render(self, repo: str) -> tuple[str, str | None]:
        return f"{self.event_type} in {repo}", None


EventKind = (
    PushEvent
    | PullRequestEvent
    | IssuesEvent
    | IssueCommentEvent
    | PullRequestReviewEvent
    | CreateEvent
    | DeleteEvent
    | ForkEvent
    | WatchEvent
    | ReleaseEvent
    | UnknownEvent
)


def parse_event_kind(event: ProviderEvent) -> EventKind:
    """Parse an event's payload into its typed variant."""
    p = event.payload

    match event.type:
        case "PushEvent":
            commits = p.get("commits") or []
            return PushEvent(commit_messages=[c.get("message", "") for c in commits])
        case "PullRequestEvent":
            pr = p.get("pull_request") or {}
            return PullRequestEvent(p.get("action"), pr.get("number"), pr.get("title"))
        case "IssuesEvent":
            issue = p.get("issue") or {}
            return IssuesEvent(p.get("action"), issue.get("number"), issue.get("title"))
        case "IssueCommentEvent":
            issue = p.get("issue") or {}
            comment = p.get("comment") or {}
            return IssueCommentEvent(issue.get("number"), comment.get("body"))
        case "PullRequestReviewEvent":
            pr = p.get("pull_request") or {}
            review = p.get("review") or {}
            return PullRequestReviewEvent(pr.get("number"), review.get("body"))
        case "CreateEvent":
            return CreateEvent(p.get("ref_type"), p.get("ref"))
        case "DeleteEvent":
            return DeleteEvent(p.get("ref_type"), p.get("ref"))
        case "ForkEvent":
            forkee = p.get("forkee") or {}
            return ForkEvent(forkee.get("full_name"))
        case "WatchEvent":
            return WatchEvent()
        case "ReleaseEvent":
            release = p.get("release") or {}
            return ReleaseEvent(release.get("tag_name"), release.get("name"))
        case _:
            return UnknownEvent(event_type=event.type, raw_payload=p)


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def normalize(event: ProviderEvent, received_at: datetime | None = None) -> NormalizedActivity:
    """
    Map a GitHub event onto a provider-neutral activity. Pure and total.

    An event without a usable created_at is stamped with received_at (the
    time it was fetched) instead of being dropped.
    """
    kind = parse_event_kind(event)
    title, description = kind.render(event.repo.name)
    timestamp = _parse_timestamp(event.created_at) or received_at or EPOCH

    return NormalizedActivity(
        source=ActivitySource.GITHUB.value,
        title=title,
        description=description,
        timestamp=timestamp,
        external_id=event.id,
        metadata={
            "eventType": event.type,
            "actor": asdict(event.actor),
            "repo": asdict(event.repo),
            "payload": event.payload,
        },
    )
