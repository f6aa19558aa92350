"""API endpoint tests for the GitHub integration routes.

Tests the HTTP layer: status codes, response shapes and error mapping.
Services are the in-memory graph from the root conftest; routes that read
connections directly get `connection_ops` patched per test.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from app.config.settings import settings
from app.services.github import (
    GitHubAuthExpired,
    GitHubRateLimited,
    GitHubRepo,
    GitHubUnknownError,
)

from tests.helpers.mock_factories import (
    TEST_USER_ID,
    fetch_result,
    make_event,
    make_mock_connection,
)

BASE = "/api/v1/integrations/github"


def _connection_ops(connection=None, token: str = "gho_fake") -> MagicMock:
    ops = MagicMock()
    ops.get_for_user = AsyncMock(return_value=connection)
    ops.get_access_token = MagicMock(return_value=token)
    ops.upsert = AsyncMock()
    return ops


def _github_repo(github_id: int = 42, full_name: str = "acme/api") -> GitHubRepo:
    return GitHubRepo(
        github_id=github_id,
        full_name=full_name,
        owner=full_name.split("/")[0],
        url=f"https://github.com/{full_name}",
        description="A test repo",
        is_private=False,
        updated_at="2026-01-15T00:00:00Z",
        language="Python",
        stars_count=10,
    )


@pytest.fixture
def ready(connections, repositories, event_source):
    """Caller connected, repository 42 selected, one matching event upstream."""
    connections.connect(TEST_USER_ID)
    repositories.select(TEST_USER_ID, 42, "acme/api")
    event_source.returns(
        fetch_result(
            make_event(event_id="e1", repo_id=42),
            make_event(event_id="e2", repo_id=99, repo_name="other/lib"),
        )
    )


# ═══════════════════════════════════════════════════════════════════════════
# POST /integrations/github/sync
# ═══════════════════════════════════════════════════════════════════════════


class TestSync:
    @pytest.mark.anyio
    async def test_sync_returns_counts(self, api_client: AsyncClient, ready, activities):
        response = await api_client.post(f"{BASE}/sync")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["counts"]["new"] == 1
        assert body["selected_repositories"] == 1
        assert [row.external_id for row in activities.for_user(TEST_USER_ID)] == ["e1"]

    @pytest.mark.anyio
    async def test_force_bypasses_cache(self, api_client: AsyncClient, ready, event_source):
        await api_client.post(f"{BASE}/sync")
        response = await api_client.post(f"{BASE}/sync", params={"force": "true"})

        assert response.json()["cache_hit"] is False
        assert event_source.calls == 2

    @pytest.mark.anyio
    async def test_no_selected_repositories(self, api_client: AsyncClient, connections):
        connections.connect(TEST_USER_ID)

        response = await api_client.post(f"{BASE}/sync")

        assert response.status_code == 200
        assert response.json()["status"] == "no_resources"

    @pytest.mark.anyio
    async def test_not_connected_is_400(self, api_client: AsyncClient):
        response = await api_client.post(f"{BASE}/sync")

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "NOT_CONNECTED"

    @pytest.mark.anyio
    async def test_expired_token_is_401(self, api_client: AsyncClient, connections, repositories):
        connections.connect(TEST_USER_ID, expires_at=datetime.now(UTC) - timedelta(minutes=1))
        repositories.select(TEST_USER_ID, 42)

        response = await api_client.post(f"{BASE}/sync")

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "TOKEN_EXPIRED"

    @pytest.mark.anyio
    async def test_rate_limited_is_429_with_retry_after(
        self, api_client: AsyncClient, ready, event_source, clock
    ):
        event_source.returns(
            GitHubRateLimited("limited", 403, rate_limit_reset=int(clock.now) + 120)
        )

        response = await api_client.post(f"{BASE}/sync")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "120"
        assert response.json()["detail"]["retry_after"] == 120

    @pytest.mark.anyio
    async def test_provider_error_is_502(self, api_client: AsyncClient, ready, event_source):
        event_source.returns(GitHubUnknownError("boom", 418))

        response = await api_client.post(f"{BASE}/sync")

        assert response.status_code == 502
        assert response.json()["detail"]["code"] == "PROVIDER_ERROR"

    @pytest.mark.anyio
    async def test_overall_timeout_is_504(
        self, api_client: AsyncClient, orchestrator, monkeypatch
    ):
        async def hang(db, user_id, force_refresh=False):
            await asyncio.sleep(10)

        monkeypatch.setattr(orchestrator, "run_sync", hang)
        monkeypatch.setattr(settings, "sync_timeout_seconds", 0.01)

        response = await api_client.post(f"{BASE}/sync")

        assert response.status_code == 504
        assert response.json()["detail"]["code"] == "TIMEOUT"

    @pytest.mark.anyio
    async def test_requires_user(self, anonymous_client: AsyncClient):
        response = await anonymous_client.post(f"{BASE}/sync")

        assert response.status_code == 401


# ═══════════════════════════════════════════════════════════════════════════
# Connection
# ═══════════════════════════════════════════════════════════════════════════


class TestConnection:
    @pytest.mark.anyio
    async def test_status_connected(self, api_client: AsyncClient, repositories):
        repositories.select(TEST_USER_ID, 42)
        ops = _connection_ops(make_mock_connection())

        with patch("app.api.v1.integrations_github.connection_ops", ops):
            response = await api_client.get(f"{BASE}/status")

        assert response.json() == {
            "connected": True,
            "token_expired": False,
            "selected_repositories": 1,
            "sync_in_progress": False,
        }

    @pytest.mark.anyio
    async def test_status_not_connected(self, api_client: AsyncClient):
        with patch("app.api.v1.integrations_github.connection_ops", _connection_ops()):
            response = await api_client.get(f"{BASE}/status")

        assert response.json()["connected"] is False

    @pytest.mark.anyio
    async def test_store_connection(self, api_client: AsyncClient):
        ops = _connection_ops()

        with patch("app.api.v1.integrations_github.connection_ops", ops):
            response = await api_client.put(
                f"{BASE}/connection", json={"access_token": "gho_new"}
            )

        assert response.status_code == 204
        args, kwargs = ops.upsert.call_args
        assert args[1:] == (TEST_USER_ID, "github")
        assert kwargs["access_token"] == "gho_new"

    @pytest.mark.anyio
    async def test_disconnect(self, api_client: AsyncClient, ready, activities):
        await api_client.post(f"{BASE}/sync")

        response = await api_client.delete(BASE)

        assert response.status_code == 200
        assert response.json() == {
            "disconnected": True,
            "removed": {"connections": 1, "repositories": 1, "activities": 1},
        }
        assert activities.for_user(TEST_USER_ID) == []


# ═══════════════════════════════════════════════════════════════════════════
# Repository selection
# ═══════════════════════════════════════════════════════════════════════════


class TestRepositories:
    @pytest.mark.anyio
    async def test_lists_with_selection_flags(
        self, api_client: AsyncClient, event_source, repositories
    ):
        event_source.repos = [_github_repo(42), _github_repo(99, "acme/web")]
        repositories.select(TEST_USER_ID, 42)
        ops = _connection_ops(make_mock_connection())

        with patch("app.api.v1.integrations_github.connection_ops", ops):
            response = await api_client.get(f"{BASE}/repositories")

        assert response.status_code == 200
        body = response.json()
        assert body["selected_count"] == 1
        assert body["cached"] is False
        assert {r["github_id"]: r["is_selected"] for r in body["repositories"]} == {
            42: True,
            99: False,
        }

    @pytest.mark.anyio
    async def test_second_listing_is_cached(self, api_client: AsyncClient, event_source):
        event_source.repos = [_github_repo(42)]
        ops = _connection_ops(make_mock_connection())

        with patch("app.api.v1.integrations_github.connection_ops", ops):
            await api_client.get(f"{BASE}/repositories")
            response = await api_client.get(f"{BASE}/repositories")

        assert response.json()["cached"] is True
        assert event_source.repo_calls == 1

    @pytest.mark.anyio
    async def test_listing_requires_connection(self, api_client: AsyncClient):
        with patch("app.api.v1.integrations_github.connection_ops", _connection_ops()):
            response = await api_client.get(f"{BASE}/repositories")

        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_listing_rate_limited(self, api_client: AsyncClient, event_source):
        async def limited(per_page=100):
            raise GitHubRateLimited("limited", 429)

        event_source.list_repositories = limited
        ops = _connection_ops(make_mock_connection())

        with patch("app.api.v1.integrations_github.connection_ops", ops):
            response = await api_client.get(f"{BASE}/repositories")

        assert response.status_code == 429

    @pytest.mark.anyio
    async def test_listing_with_revoked_token(self, api_client: AsyncClient, event_source):
        async def revoked(per_page=100):
            raise GitHubAuthExpired("bad credentials", 401)

        event_source.list_repositories = revoked
        ops = _connection_ops(make_mock_connection())

        with patch("app.api.v1.integrations_github.connection_ops", ops):
            response = await api_client.get(f"{BASE}/repositories")

        assert response.status_code == 401

    @pytest.mark.anyio
    async def test_select_repository(self, api_client: AsyncClient, sink):
        response = await api_client.post(
            f"{BASE}/repositories",
            json={
                "repo_id": 42,
                "repo_name": "acme/api",
                "repo_owner": "acme",
                "repo_url": "https://github.com/acme/api",
                "is_private": True,
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["repo_id"] == 42
        assert body["user_id"] == TEST_USER_ID
        assert sink.last().payload["action"] == "added"

    @pytest.mark.anyio
    async def test_select_repository_validates_body(self, api_client: AsyncClient):
        response = await api_client.post(f"{BASE}/repositories", json={"repo_id": 42})

        assert response.status_code == 422

    @pytest.mark.anyio
    async def test_deselect_repository(self, api_client: AsyncClient, repositories):
        repositories.select(TEST_USER_ID, 42)

        response = await api_client.delete(f"{BASE}/repositories/42")

        assert response.json() == {"removed": True}

    @pytest.mark.anyio
    async def test_deselect_unknown_repository(self, api_client: AsyncClient):
        response = await api_client.delete(f"{BASE}/repositories/42")

        assert response.status_code == 200
        assert response.json() == {"removed": False}
