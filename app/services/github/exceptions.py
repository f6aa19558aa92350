"""Exceptions for the GitHub activity source.

Every failure leaving the adapter is one of four classified subclasses of
GitHubAPIError so callers can decide between retrying, degrading, and asking
the user to reconnect.
"""


class GitHubAPIError(Exception):
    """Error from GitHub API."""

    retryable = False

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        rate_limit_reset: int | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.rate_limit_reset = rate_limit_reset  # Unix timestamp when rate limit resets
        super().__init__(message)


class GitHubAuthExpired(GitHubAPIError):
    """Token is invalid, expired or revoked. Never retried automatically."""


class GitHubRateLimited(GitHubAPIError):
    """GitHub is throttling this token."""

    retryable = True

    def retry_after(self, now: float) -> int | None:
        """Seconds until the limit resets, if GitHub told us."""
        if self.rate_limit_reset is None:
            return None
        return max(0, int(self.rate_limit_reset - now))


class GitHubTransientError(GitHubAPIError):
    """Network failure, timeout or 5xx. Worth one retry."""

    retryable = True


class GitHubUnknownError(GitHubAPIError):
    """Any other non-success response (403 without rate limit, 404, 422...)."""


class GitHubTimeout(GitHubTransientError):
    """No response within the fetch timeout."""
