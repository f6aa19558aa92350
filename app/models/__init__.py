from app.models.activity import Activity, ActivityRead, ActivitySource
from app.models.activity_cache_entry import ActivityCacheEntry
from app.models.connection import Connection
from app.models.selected_repository import (
    SelectedRepository,
    SelectedRepositoryCreate,
)

__all__ = [
    "Activity",
    "ActivityCacheEntry",
    "ActivityRead",
    "ActivitySource",
    "Connection",
    "SelectedRepository",
    "SelectedRepositoryCreate",
]
