"""Unit tests for GitHub HTTP client and helpers.

Tests the shared HTTP client singleton, rate limit parsing, and the
classification of error responses and transport failures.
"""

from __future__ import annotations

import httpx
import pytest

from app.services.github.exceptions import (
    GitHubAPIError,
    GitHubAuthExpired,
    GitHubRateLimited,
    GitHubTimeout,
    GitHubTransientError,
    GitHubUnknownError,
)
from app.services.github.helpers import (
    RateLimitInfo,
    classify_transport_error,
    handle_error_response,
)
from app.services.github.http_client import close_github_client, get_github_client

from tests.helpers.mock_factories import make_response

# ═══════════════════════════════════════════════════════════════════════════
# RateLimitInfo
# ═══════════════════════════════════════════════════════════════════════════


class TestRateLimitInfo:
    """Tests for rate limit header parsing."""

    def test_extracts_remaining_and_reset(self):
        resp = make_response(
            headers={
                "X-RateLimit-Remaining": "42",
                "X-RateLimit-Reset": "1700000000",
            }
        )
        info = RateLimitInfo(resp)

        assert info.remaining_count == 42
        assert info.reset_timestamp == 1700000000
        assert info.is_exhausted is False

    def test_detects_exhausted(self):
        resp = make_response(
            headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"}
        )

        assert RateLimitInfo(resp).is_exhausted is True

    def test_missing_headers(self):
        info = RateLimitInfo(make_response(headers={}))

        assert info.remaining_count is None
        assert info.reset_timestamp is None
        assert info.is_exhausted is False


# ═══════════════════════════════════════════════════════════════════════════
# handle_error_response
# ═══════════════════════════════════════════════════════════════════════════


class TestHandleErrorResponse:
    """Every non-2xx status maps to exactly one classified error."""

    def test_200_does_nothing(self):
        handle_error_response(make_response(status_code=200), "events")

    def test_401_is_auth_expired(self):
        with pytest.raises(GitHubAuthExpired, match="Invalid or expired"):
            handle_error_response(make_response(status_code=401), "events")

    def test_429_is_rate_limited(self):
        resp = make_response(status_code=429, headers={"X-RateLimit-Reset": "1700000600"})
        with pytest.raises(GitHubRateLimited) as exc_info:
            handle_error_response(resp, "events")

        assert exc_info.value.rate_limit_reset == 1700000600
        assert exc_info.value.retryable is True

    def test_403_with_rate_limit_exhausted(self):
        resp = make_response(
            status_code=403,
            headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"},
        )
        with pytest.raises(GitHubRateLimited, match="rate limit"):
            handle_error_response(resp, "events")

    def test_403_without_rate_limit_is_unknown(self):
        resp = make_response(status_code=403, headers={"X-RateLimit-Remaining": "50"})
        with pytest.raises(GitHubUnknownError, match="forbidden"):
            handle_error_response(resp, "events")

    def test_404_is_unknown(self):
        with pytest.raises(GitHubUnknownError, match="not found"):
            handle_error_response(make_response(status_code=404), "events")

    @pytest.mark.parametrize("status_code", [500, 502, 503])
    def test_5xx_is_transient(self, status_code):
        with pytest.raises(GitHubTransientError) as exc_info:
            handle_error_response(make_response(status_code=status_code), "events")

        assert exc_info.value.status_code == status_code

    def test_422_is_unknown(self):
        with pytest.raises(GitHubUnknownError, match="422"):
            handle_error_response(make_response(status_code=422), "events")

    def test_all_classified_errors_share_base(self):
        with pytest.raises(GitHubAPIError):
            handle_error_response(make_response(status_code=401), "events")


# ═══════════════════════════════════════════════════════════════════════════
# classify_transport_error
# ═══════════════════════════════════════════════════════════════════════════


class TestClassifyTransportError:
    """Failures raised by the HTTP client before any response exists."""

    def test_timeout_is_transient(self):
        err = classify_transport_error(httpx.ReadTimeout("slow"), "events")

        assert isinstance(err, GitHubTimeout)
        assert isinstance(err, GitHubTransientError)

    def test_connect_error_is_transient(self):
        err = classify_transport_error(httpx.ConnectError("refused"), "events")

        assert type(err) is GitHubTransientError
        assert "Network error" in err.message

    def test_os_error_is_transient(self):
        err = classify_transport_error(ConnectionRefusedError(), "events")

        assert isinstance(err, GitHubTransientError)

    def test_classified_error_passes_through(self):
        original = GitHubAuthExpired("nope", 401)

        assert classify_transport_error(original, "events") is original

    def test_anything_else_is_unknown(self):
        err = classify_transport_error(ValueError("bad json"), "events")

        assert isinstance(err, GitHubUnknownError)


class TestRateLimitedRetryAfter:
    def test_seconds_until_reset(self):
        err = GitHubRateLimited("limited", 429, rate_limit_reset=1_700_000_120)

        assert err.retry_after(1_700_000_000) == 120

    def test_never_negative(self):
        err = GitHubRateLimited("limited", 429, rate_limit_reset=1_700_000_000)

        assert err.retry_after(1_700_000_500) == 0

    def test_unknown_reset(self):
        assert GitHubRateLimited("limited", 429).retry_after(1_700_000_000) is None


# ═══════════════════════════════════════════════════════════════════════════
# HTTP Client Singleton
# ═══════════════════════════════════════════════════════════════════════════


class TestGitHubHttpClient:
    """Tests for the shared HTTP client singleton."""

    @pytest.mark.asyncio
    async def test_client_is_configured_for_github(self):
        import app.services.github.http_client as mod

        original = mod._client
        mod._client = None

        try:
            client = get_github_client()
            assert isinstance(client, httpx.AsyncClient)
            assert str(client.base_url).startswith("https://api.github.com")
            assert client.timeout.connect == 5.0
        finally:
            await close_github_client()
            mod._client = original

    @pytest.mark.asyncio
    async def test_returns_same_instance(self):
        import app.services.github.http_client as mod

        original = mod._client
        mod._client = None

        try:
            assert get_github_client() is get_github_client()
        finally:
            await close_github_client()
            mod._client = original

    @pytest.mark.asyncio
    async def test_close_resets_singleton(self):
        import app.services.github.http_client as mod

        original = mod._client
        mod._client = None

        try:
            first = get_github_client()
            await close_github_client()

            assert first.is_closed
            assert mod._client is None
        finally:
            mod._client = original
