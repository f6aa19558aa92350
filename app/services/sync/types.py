"""Result types for sync runs."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class SyncStatus(str, Enum):
    OK = "ok"
    NO_RESOURCES = "no_resources"
    IN_PROGRESS = "in_progress"
    ERROR = "error"


class SyncErrorReason(str, Enum):
    AUTH_EXPIRED = "auth_expired"
    RATE_LIMITED = "rate_limited"
    TRANSIENT_NETWORK = "transient_network"
    NOT_CONNECTED = "not_connected"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"


class SyncAdvisory(str, Enum):
    """Non-fatal conditions worth surfacing alongside a result."""

    CACHE_DEGRADED = "cache_degraded"
    SERVED_STALE = "served_stale"
    FALLBACK_STREAM = "fallback_stream"


class SyncState(str, Enum):
    """Phases of a single run, used for logging."""

    IDLE = "idle"
    RESOLVING_SCOPE = "resolving_scope"
    CACHE_CHECK = "cache_check"
    FETCHING = "fetching"
    DEDUPLICATING = "deduplicating"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"


# User-facing copy per failure reason. Provider messages are logged, never returned.
ERROR_MESSAGES: dict[SyncErrorReason, str] = {
    SyncErrorReason.AUTH_EXPIRED: (
        "GitHub token expired or invalid. Please reconnect your GitHub account."
    ),
    SyncErrorReason.RATE_LIMITED: "GitHub rate limit reached. Try again later.",
    SyncErrorReason.TRANSIENT_NETWORK: "Couldn't reach GitHub. Try again in a moment.",
    SyncErrorReason.NOT_CONNECTED: (
        "GitHub is not connected. Connect your GitHub account to sync activity."
    ),
    SyncErrorReason.PROVIDER_ERROR: "GitHub returned an unexpected error while syncing.",
    SyncErrorReason.TIMEOUT: "GitHub took too long to respond. Try again in a moment.",
}


@dataclass
class SyncCounts:
    fetched: int = 0  # after selection filtering
    new: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class SyncResult:
    status: SyncStatus
    counts: SyncCounts = field(default_factory=SyncCounts)
    error_reason: SyncErrorReason | None = None
    message: str = ""
    advisories: list[SyncAdvisory] = field(default_factory=list)
    retry_after: int | None = None
    elapsed_ms: int = 0
    cache_hit: bool = False
    selected_repositories: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status != SyncStatus.ERROR

    @classmethod
    def failure(
        cls,
        reason: SyncErrorReason,
        retry_after: int | None = None,
    ) -> "SyncResult":
        return cls(
            status=SyncStatus.ERROR,
            error_reason=reason,
            message=ERROR_MESSAGES[reason],
            retry_after=retry_after,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "counts": asdict(self.counts),
            "error_reason": self.error_reason.value if self.error_reason else None,
            "message": self.message,
            "advisories": [a.value for a in self.advisories],
            "retry_after": self.retry_after,
            "elapsed_ms": self.elapsed_ms,
            "cache_hit": self.cache_hit,
            "selected_repositories": self.selected_repositories,
        }


@dataclass
class BatchSyncReport:
    """Summary of a scheduled sync across all connected users (for logging/monitoring)."""

    users: int = 0
    ok: int = 0
    no_resources: int = 0
    failed: int = 0
    skipped_in_progress: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
