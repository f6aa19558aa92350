"""Internal API endpoints, protected by shared secret, not user auth.

These endpoints are called by cron jobs / external schedulers, not by
human users. They bypass the gateway's user header and instead validate a
shared secret via the X-Cron-Secret header.
"""

import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends

from app.api.deps import CacheStore, Orchestrator, verify_cron_secret
from app.core.database import session_scope

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(verify_cron_secret)],
)


@router.post("/cache/cleanup")
async def trigger_cache_cleanup(cache: CacheStore) -> dict[str, Any]:
    """Remove expired cache entries from both tiers."""
    removed = await cache.sweep_expired()
    return {"removed": removed}


@router.post("/sync")
async def trigger_scheduled_sync(orchestrator: Orchestrator) -> dict[str, Any]:
    """
    Sync every user with a GitHub connection.

    Each user runs in their own session; one user's failure is reported in
    the result and never aborts the batch.
    """
    report = await orchestrator.run_for_all_users(session_scope)
    return asdict(report)
