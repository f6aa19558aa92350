"""
GitHub activity source.

Fetches a user's recent events and repositories through the shared HTTP
client. No persistence and no caching happen here; every failure is raised
as a classified GitHubAPIError subclass, including success responses whose
body isn't the JSON shape GitHub documents.
"""

import logging
from typing import Any

import httpx

from app.config import settings
from app.services.github.exceptions import (
    GitHubAPIError,
    GitHubTransientError,
    GitHubUnknownError,
)
from app.services.github.helpers import (
    RateLimitInfo,
    classify_transport_error,
    handle_error_response,
)
from app.services.github.http_client import get_github_client
from app.services.github.types import EventFetchResult, GitHubRepo, ProviderEvent

logger = logging.getLogger(__name__)


class GitHubActivitySource:
    """Read-only GitHub REST client for one user's token."""

    API_VERSION = "2022-11-28"
    USER_AGENT = "activity-sync/1.0"

    def __init__(self, token: str, client: httpx.AsyncClient | None = None):
        self.token = token
        self._client = client
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.API_VERSION,
            "User-Agent": self.USER_AGENT,
        }

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_github_client()

    async def _get(
        self,
        path: str,
        context: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.client.get(path, headers=self._headers, params=params)
        except (httpx.HTTPError, OSError) as e:
            raise classify_transport_error(e, context) from e

        handle_error_response(response, context)
        return response

    @staticmethod
    def _json(response: httpx.Response, context: str, expected: type) -> Any:
        """Decode a success body, rejecting anything that isn't the expected JSON shape."""
        try:
            body = response.json()
        except ValueError as e:
            raise GitHubUnknownError(
                f"Malformed GitHub response for {context}: body is not JSON",
                response.status_code,
            ) from e
        if not isinstance(body, expected):
            raise GitHubUnknownError(
                f"Malformed GitHub response for {context}: "
                f"expected {expected.__name__}, got {type(body).__name__}",
                response.status_code,
            )
        return body

    async def get_authenticated_login(self) -> str:
        """Login of the token's owner (GET /user)."""
        response = await self._get("/user", "authenticated user")
        login = self._json(response, "authenticated user", dict).get("login")
        if not login:
            raise GitHubAPIError("Unable to get authenticated user information")
        return login

    async def fetch_raw_events(self, limit: int | None = None) -> EventFetchResult:
        """
        Fetch the user's most recent events.

        Reads the user-scoped stream (includes private repositories). If that
        fails with anything other than a transient error, falls back once to
        the public stream; the fallback is logged because it can miss events
        from private repositories. Transient errors are raised so the caller
        can retry.
        """
        per_page = min(limit or settings.github_events_page_size, 100)
        login = await self.get_authenticated_login()

        try:
            response = await self._get(
                f"/users/{login}/events",
                f"events for {login}",
                params={"per_page": per_page},
            )
            used_fallback = False
        except GitHubTransientError:
            raise
        except GitHubAPIError as e:
            logger.warning(
                f"User event stream failed for {login} ({type(e).__name__}: {e.message}); "
                f"falling back to public events, private activity will be missing"
            )
            response = await self._get(
                f"/users/{login}/events/public",
                f"public events for {login}",
                params={"per_page": per_page},
            )
            used_fallback = True

        body = self._json(response, f"events for {login}", list)
        try:
            events = [ProviderEvent.from_api(item) for item in body]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise GitHubUnknownError(
                f"Malformed GitHub response for events for {login}: {e!r}",
                response.status_code,
            ) from e
        logger.info(
            f"Fetched {len(events)} GitHub events for {login}"
            f"{' (public fallback)' if used_fallback else ''}"
        )
        return EventFetchResult(
            events=events,
            used_fallback=used_fallback,
            rate_limit_remaining=RateLimitInfo(response).remaining_count,
        )

    async def list_repositories(self, per_page: int = 100) -> list[GitHubRepo]:
        """Repositories the user can select for tracking, most recently updated first."""
        response = await self._get(
            "/user/repos",
            "user repositories",
            params={"per_page": min(per_page, 100), "sort": "updated", "type": "all"},
        )
        body = self._json(response, "user repositories", list)
        try:
            return [self._normalize_repo(r) for r in body]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise GitHubUnknownError(
                f"Malformed GitHub response for user repositories: {e!r}",
                response.status_code,
            ) from e

    def _normalize_repo(self, data: dict[str, Any]) -> GitHubRepo:
        owner = data.get("owner") or {}
        return GitHubRepo(
            github_id=data["id"],
            full_name=data["full_name"],
            owner=owner.get("login", data["full_name"].split("/")[0]),
            url=data["html_url"],
            description=data.get("description"),
            is_private=data.get("private", False),
            updated_at=data.get("updated_at"),
            language=data.get("language"),
            stars_count=data.get("stargazers_count", 0),
        )
