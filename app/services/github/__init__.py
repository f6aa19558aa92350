"""
GitHub activity source package.

Usage: `from app.services.github import GitHubActivitySource, normalize`

Module structure:
- activity_source.py: REST reads (events with public fallback, repositories)
- events.py: Typed event payloads and normalization into activities
- helpers.py: Rate limit parsing and error classification
- types.py: Data types
- exceptions.py: Classified exceptions
- http_client.py: Shared pooled HTTP client
"""

from app.services.github.activity_source import GitHubActivitySource
from app.services.github.events import normalize, parse_event_kind
from app.services.github.exceptions import (
    GitHubAPIError,
    GitHubAuthExpired,
    GitHubRateLimited,
    GitHubTimeout,
    GitHubTransientError,
    GitHubUnknownError,
)
from app.services.github.helpers import RateLimitInfo, handle_error_response
from app.services.github.http_client import close_github_client
from app.services.github.types import (
    EventFetchResult,
    GitHubRepo,
    NormalizedActivity,
    ProviderEvent,
)

__all__ = [
    # Source
    "GitHubActivitySource",
    # Normalization
    "normalize",
    "parse_event_kind",
    # HTTP client lifecycle
    "close_github_client",
    # Utilities
    "handle_error_response",
    "RateLimitInfo",
    # Exceptions
    "GitHubAPIError",
    "GitHubAuthExpired",
    "GitHubRateLimited",
    "GitHubTimeout",
    "GitHubTransientError",
    "GitHubUnknownError",
    # Types
    "EventFetchResult",
    "GitHubRepo",
    "NormalizedActivity",
    "ProviderEvent",
]
