"""API dependencies - re-exports from submodules."""

from .auth import CurrentUserId, DbSession, get_current_user_id
from .cron import check_cron_secret, verify_cron_secret
from .services import (
    Broker,
    CacheStore,
    Catalog,
    Orchestrator,
    Selection,
    get_cache_store,
    get_notification_broker,
    get_repository_catalog,
    get_selection_filter,
    get_sync_orchestrator,
)

__all__ = [
    # Auth
    "get_current_user_id",
    "CurrentUserId",
    "DbSession",
    # Cron
    "check_cron_secret",
    "verify_cron_secret",
    # Services
    "get_cache_store",
    "get_notification_broker",
    "get_repository_catalog",
    "get_selection_filter",
    "get_sync_orchestrator",
    "Broker",
    "CacheStore",
    "Catalog",
    "Orchestrator",
    "Selection",
]
