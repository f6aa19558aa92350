"""
GitHub API helper utilities.

Rate limit header parsing and mapping of HTTP responses and transport
failures onto the classified exceptions in exceptions.py.
"""

import logging

import httpx

from app.services.github.exceptions import (
    GitHubAPIError,
    GitHubAuthExpired,
    GitHubRateLimited,
    GitHubTimeout,
    GitHubTransientError,
    GitHubUnknownError,
)

logger = logging.getLogger(__name__)


class RateLimitInfo:
    """Rate limit information from GitHub API response."""

    def __init__(self, response: httpx.Response) -> None:
        self.remaining = response.headers.get("X-RateLimit-Remaining")
        self.reset = response.headers.get("X-RateLimit-Reset")

    @property
    def remaining_count(self) -> int | None:
        return int(self.remaining) if self.remaining else None

    @property
    def reset_timestamp(self) -> int | None:
        """Get reset timestamp as integer, or None if not available."""
        return int(self.reset) if self.reset else None

    @property
    def is_exhausted(self) -> bool:
        """Check if rate limit is exhausted."""
        return self.remaining is not None and int(self.remaining) == 0


def handle_error_response(response: httpx.Response, context: str) -> None:
    """
    Raise a classified error for any non-success GitHub response.

    Args:
        response: The HTTP response from GitHub API
        context: What was being fetched, for log/error messages

    Raises:
        GitHubAuthExpired: 401
        GitHubRateLimited: 429, or 403 with the rate limit exhausted
        GitHubTransientError: 5xx
        GitHubUnknownError: any other non-2xx status
    """
    status = response.status_code
    if 200 <= status < 300:
        return

    rate_info = RateLimitInfo(response)

    if status == 401:
        raise GitHubAuthExpired("Invalid or expired GitHub token", 401)
    if status == 429 or (status == 403 and rate_info.is_exhausted):
        raise GitHubRateLimited(
            "GitHub API rate limit exceeded",
            status,
            rate_limit_reset=rate_info.reset_timestamp,
        )
    if status >= 500:
        raise GitHubTransientError(f"GitHub API unavailable ({status}) for {context}", status)
    if status == 403:
        raise GitHubUnknownError(f"GitHub API forbidden for {context}", 403)
    if status == 404:
        raise GitHubUnknownError(f"GitHub resource not found: {context}", 404)

    raise GitHubUnknownError(f"GitHub API error: {status}", status)


def classify_transport_error(exc: Exception, context: str) -> GitHubAPIError:
    """Map an exception raised by the HTTP client (not a response) to a classified error."""
    if isinstance(exc, GitHubAPIError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return GitHubTimeout(f"Timed out fetching {context}")
    if isinstance(exc, (httpx.TransportError, OSError)):
        return GitHubTransientError(f"Network error fetching {context}: {exc}")
    return GitHubUnknownError(f"Unexpected error fetching {context}: {exc}")
