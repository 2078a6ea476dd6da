# =============================================================================
# demonlist_core/offline/__init__.py
# Local-first storage for the Demon List
# =============================================================================
"""
Local-First Storage Module

The app reads and writes a local cache only; the remote tables are mirrored
in the background. Everything keeps working with no network at all.

Architecture:
------------
┌─────────────────────────────────────────────────────────────────┐
│                     LOCAL-FIRST ARCHITECTURE                     │
├─────────────────────────────────────────────────────────────────┤
│                                                                  │
│   ┌──────────────────────────────────────────────────────────┐  │
│   │                  ListDataService                          │  │
│   │         (get/save per collection, add_audit)              │  │
│   └──────────────────────────────────────────────────────────┘  │
│              │ write now              │ schedule push           │
│              ▼                        ▼                         │
│   ┌──────────────────┐        ┌──────────────────┐             │
│   │ LocalCacheStore  │◄───────│   SyncEngine     │             │
│   │ (SQLite k/v)     │  pull  │ (queue+periodic) │             │
│   └──────────────────┘        └──────────────────┘             │
│                                       │                         │
│                                       ▼                         │
│                              ┌──────────────────┐              │
│                              │ Supabase REST    │              │
│                              └──────────────────┘              │
└─────────────────────────────────────────────────────────────────┘

Usage:
------
from demonlist_core.offline import build_runtime, initialize_storage

runtime = initialize_storage(build_runtime())
levels = runtime.data.published_levels()
runtime.shutdown()
"""

from demonlist_core.offline.local_cache import LocalCacheStore

from demonlist_core.offline.sync_engine import (
    SyncEngine,
    SyncState,
)

from demonlist_core.offline.data_service import ListDataService

from demonlist_core.offline.bootstrap import (
    StorageRuntime,
    build_runtime,
    initialize_storage,
)

__all__ = [
    "LocalCacheStore",
    "SyncEngine",
    "SyncState",
    "ListDataService",
    "StorageRuntime",
    "build_runtime",
    "initialize_storage",
]
