"""
Sync orchestration.

Module structure:
- orchestrator.py: SyncOrchestrator (run_sync, scheduled batch, disconnect)
- catalog.py: Cached repository picker
- locks.py: Per-user in-process exclusion
- types.py: SyncResult and friends
"""

from app.services.sync.catalog import RepositoryCatalog
from app.services.sync.locks import UserSyncLocks
from app.services.sync.orchestrator import SyncOrchestrator
from app.services.sync.types import (
    BatchSyncReport,
    SyncAdvisory,
    SyncCounts,
    SyncErrorReason,
    SyncResult,
    SyncState,
    SyncStatus,
)

__all__ = [
    "BatchSyncReport",
    "RepositoryCatalog",
    "SyncAdvisory",
    "SyncCounts",
    "SyncErrorReason",
    "SyncOrchestrator",
    "SyncResult",
    "SyncState",
    "SyncStatus",
    "UserSyncLocks",
]
