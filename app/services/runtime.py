"""Process-wide service instances, wired once at import."""

from app.config import settings
from app.services.cache import ActivityCacheStore, DatabaseCacheTier
from app.services.notifications import UserEventBroker
from app.services.selection import SelectionFilter
from app.services.sync import RepositoryCatalog, SyncOrchestrator

notification_broker = UserEventBroker(queue_size=settings.notification_queue_size)

cache_store = ActivityCacheStore(
    DatabaseCacheTier(),
    maxsize=settings.memory_cache_maxsize,
)

selection_filter = SelectionFilter(notification_broker)

repository_catalog = RepositoryCatalog(cache_store)

sync_orchestrator = SyncOrchestrator(cache_store, notification_broker, selection_filter)
