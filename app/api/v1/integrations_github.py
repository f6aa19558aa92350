"""GitHub integration endpoints: sync, connection, repository selection."""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from app.api.deps import Catalog, CurrentUserId, DbSession, Orchestrator, Selection
from app.config import settings
from app.core.exceptions import NotConnectedError, ReauthenticationRequired
from app.domain import connection_ops
from app.models import ActivitySource, SelectedRepository, SelectedRepositoryCreate
from app.services.github import GitHubAPIError, GitHubAuthExpired, GitHubRateLimited
from app.services.sync import SyncErrorReason, SyncResult, SyncStatus
from app.services.sync.types import ERROR_MESSAGES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations/github", tags=["github"])

PROVIDER = ActivitySource.GITHUB.value


# ─────────────────────────────────────────────────────────────
# Schemas
# ─────────────────────────────────────────────────────────────


class ConnectionRequest(BaseModel):
    """Credentials forwarded by the auth gateway once OAuth completes."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None


class ConnectionStatus(BaseModel):
    connected: bool
    token_expired: bool
    selected_repositories: int
    sync_in_progress: bool


class RepositoryOption(BaseModel):
    """A GitHub repository the user may select for tracking."""

    github_id: int
    full_name: str
    owner: str
    url: str
    description: str | None
    is_private: bool
    updated_at: str | None
    language: str | None
    stars_count: int
    is_selected: bool


class RepositoryListResponse(BaseModel):
    repositories: list[RepositoryOption]
    selected_count: int
    cached: bool


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────


def _sync_response(result: SyncResult) -> dict[str, Any]:
    """Map a SyncResult onto the HTTP response (errors become HTTPExceptions)."""
    if result.status != SyncStatus.ERROR:
        return result.to_dict()

    reason = result.error_reason
    if reason == SyncErrorReason.AUTH_EXPIRED:
        raise ReauthenticationRequired()
    if reason == SyncErrorReason.NOT_CONNECTED:
        raise NotConnectedError()
    if reason == SyncErrorReason.RATE_LIMITED:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": result.message,
                "code": "RATE_LIMITED",
                "retry_after": result.retry_after,
            },
            headers={"Retry-After": str(result.retry_after)} if result.retry_after else None,
        )

    code = reason.value.upper() if reason else "SYNC_FAILED"
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": result.message, "code": code},
    )


def _github_http_error(e: GitHubAPIError) -> HTTPException:
    """Translate an adapter error from a direct GitHub read into an HTTP error."""
    if isinstance(e, GitHubAuthExpired):
        return ReauthenticationRequired()
    if isinstance(e, GitHubRateLimited):
        detail = "GitHub rate limit exceeded."
        retry_after = e.retry_after(time.time())
        if retry_after is not None:
            detail = f"{detail} Rate limit resets in {retry_after // 60} minutes."
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)

    logger.error(f"GitHub request failed ({e.status_code}): {e.message}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="GitHub request failed. Try again in a moment.",
    )


async def _require_token(db: DbSession, user_id: str) -> str:
    connection = await connection_ops.get_for_user(db, user_id, PROVIDER)
    if connection is None:
        raise NotConnectedError()
    if connection.is_expired():
        raise ReauthenticationRequired()
    return connection_ops.get_access_token(connection)


# ─────────────────────────────────────────────────────────────
# Sync
# ─────────────────────────────────────────────────────────────


@router.post("/sync")
async def sync_github_activity(
    current_user_id: CurrentUserId,
    db: DbSession,
    orchestrator: Orchestrator,
    force: bool = Query(False, description="Bypass the cached GitHub response"),
) -> dict[str, Any]:
    """
    Sync the caller's GitHub activity from their selected repositories.

    Returns counts of new/updated/unchanged activities. A sync already
    running for the caller returns status "in_progress" instead of starting
    another one.
    """
    try:
        async with asyncio.timeout(settings.sync_timeout_seconds):
            result = await orchestrator.run_sync(db, current_user_id, force_refresh=force)
    except TimeoutError:
        logger.error(
            f"Sync for user {current_user_id} exceeded {settings.sync_timeout_seconds}s, "
            f"keeping activities stored so far"
        )
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail={
                "error": ERROR_MESSAGES[SyncErrorReason.TIMEOUT],
                "code": "TIMEOUT",
            },
        ) from None

    return _sync_response(result)


# ─────────────────────────────────────────────────────────────
# Connection
# ─────────────────────────────────────────────────────────────


@router.get("/status", response_model=ConnectionStatus)
async def get_connection_status(
    current_user_id: CurrentUserId,
    db: DbSession,
    selection: Selection,
    orchestrator: Orchestrator,
) -> ConnectionStatus:
    """Whether GitHub is connected and how many repositories are tracked."""
    connection = await connection_ops.get_for_user(db, current_user_id, PROVIDER)
    return ConnectionStatus(
        connected=connection is not None,
        token_expired=connection is not None and connection.is_expired(),
        selected_repositories=await selection.count(db, current_user_id),
        sync_in_progress=orchestrator.locks.is_locked(current_user_id),
    )


@router.put("/connection", status_code=status.HTTP_204_NO_CONTENT)
async def store_connection(
    data: ConnectionRequest,
    current_user_id: CurrentUserId,
    db: DbSession,
) -> None:
    """Store (or replace) the caller's GitHub credentials."""
    await connection_ops.upsert(
        db,
        current_user_id,
        PROVIDER,
        access_token=data.access_token,
        refresh_token=data.refresh_token,
        expires_at=data.expires_at,
    )
    logger.info(f"Stored GitHub connection for user {current_user_id}")


@router.delete("")
async def disconnect_github(
    current_user_id: CurrentUserId,
    db: DbSession,
    orchestrator: Orchestrator,
) -> dict[str, Any]:
    """
    Disconnect GitHub.

    Removes the stored credentials, the repository selection, every synced
    GitHub activity and all cached GitHub responses for the caller.
    """
    removed = await orchestrator.disconnect(db, current_user_id)
    return {"disconnected": True, "removed": removed}


# ─────────────────────────────────────────────────────────────
# Repository selection
# ─────────────────────────────────────────────────────────────


@router.get("/repositories", response_model=RepositoryListResponse)
async def list_repositories(
    current_user_id: CurrentUserId,
    db: DbSession,
    catalog: Catalog,
    selection: Selection,
    refresh: bool = Query(False, description="Bypass the cached repository list"),
) -> RepositoryListResponse:
    """List the caller's GitHub repositories, marking the ones being tracked."""
    token = await _require_token(db, current_user_id)

    try:
        repos, cached = await catalog.list_repositories(
            current_user_id, token, force_refresh=refresh
        )
    except GitHubAPIError as e:
        raise _github_http_error(e) from None

    allow_list = await selection.load(db, current_user_id)
    return RepositoryListResponse(
        repositories=[
            RepositoryOption(
                github_id=r.github_id,
                full_name=r.full_name,
                owner=r.owner,
                url=r.url,
                description=r.description,
                is_private=r.is_private,
                updated_at=r.updated_at,
                language=r.language,
                stars_count=r.stars_count,
                is_selected=allow_list.is_eligible(r.github_id),
            )
            for r in repos
        ],
        selected_count=len(allow_list),
        cached=cached,
    )


@router.post(
    "/repositories",
    response_model=SelectedRepository,
    status_code=status.HTTP_201_CREATED,
)
async def select_repository(
    data: SelectedRepositoryCreate,
    current_user_id: CurrentUserId,
    db: DbSession,
    selection: Selection,
) -> SelectedRepository:
    """Track a repository. Selecting it again refreshes its name and URL."""
    return await selection.add(db, current_user_id, data.model_dump())


@router.delete("/repositories/{repo_id}")
async def deselect_repository(
    repo_id: int,
    current_user_id: CurrentUserId,
    db: DbSession,
    selection: Selection,
) -> dict[str, bool]:
    """Stop tracking a repository. Activities already synced are kept."""
    removed = await selection.remove(db, current_user_id, repo_id)
    return {"removed": removed}
