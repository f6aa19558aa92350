from app.domain.activity_operations import activity_ops
from app.domain.cache_entry_operations import cache_entry_ops
from app.domain.connection_operations import connection_ops
from app.domain.selected_repository_operations import selected_repository_ops

__all__ = [
    "activity_ops",
    "cache_entry_ops",
    "connection_ops",
    "selected_repository_ops",
]
