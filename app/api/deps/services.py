"""Service dependencies. Tests swap these via app.dependency_overrides."""

from typing import Annotated

from fastapi import Depends

from app.services import runtime
from app.services.cache import ActivityCacheStore
from app.services.notifications import UserEventBroker
from app.services.selection import SelectionFilter
from app.services.sync import RepositoryCatalog, SyncOrchestrator


def get_cache_store() -> ActivityCacheStore:
    return runtime.cache_store


def get_notification_broker() -> UserEventBroker:
    return runtime.notification_broker


def get_selection_filter() -> SelectionFilter:
    return runtime.selection_filter


def get_repository_catalog() -> RepositoryCatalog:
    return runtime.repository_catalog


def get_sync_orchestrator() -> SyncOrchestrator:
    return runtime.sync_orchestrator


CacheStore = Annotated[ActivityCacheStore, Depends(get_cache_store)]
Broker = Annotated[UserEventBroker, Depends(get_notification_broker)]
Selection = Annotated[SelectionFilter, Depends(get_selection_filter)]
Catalog = Annotated[RepositoryCatalog, Depends(get_repository_catalog)]
Orchestrator = Annotated[SyncOrchestrator, Depends(get_sync_orchestrator)]
