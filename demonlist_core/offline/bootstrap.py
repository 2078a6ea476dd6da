# =============================================================================
# demonlist_core/offline/bootstrap.py
# Wiring and startup sequence for the storage layer
# =============================================================================
"""
Builds the storage runtime (cache, remote client, sync engine, data and
session services) from explicit configuration and runs the startup
sequence:

    bootstrap pull -> seed if empty -> start background push -> ready

Startup never fails because the remote is unreachable; the app simply runs
on the local cache.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional
import logging

from demonlist_core.data import SupabaseConfig, SupabaseRestClient, load_supabase_config
from demonlist_core.errors import ConfigurationError, safe_execute
from demonlist_core.models import now_ms
from demonlist_core.offline.data_service import ListDataService
from demonlist_core.offline.local_cache import LocalCacheStore
from demonlist_core.offline.sync_engine import SyncEngine
from demonlist_core.services.seed import initialize_database
from demonlist_core.state import SessionManager

logger = logging.getLogger(__name__)


@dataclass
class StorageRuntime:
    """Everything the presentation layer needs, built once at startup."""
    store: LocalCacheStore
    client: Optional[SupabaseRestClient]
    sync_engine: SyncEngine
    data: ListDataService
    sessions: SessionManager
    clock: Callable[[], int] = now_ms
    ready: bool = False
    remote_synced: bool = False
    _ready_callbacks: List[Callable[["StorageRuntime"], None]] = field(default_factory=list, repr=False)

    def on_ready(self, callback: Callable[["StorageRuntime"], None]) -> None:
        """Register a callback run once startup has finished."""
        if self.ready:
            callback(self)
        else:
            self._ready_callbacks.append(callback)

    def _fire_ready(self) -> None:
        self.ready = True
        for callback in self._ready_callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Error in ready callback: {e}")
        self._ready_callbacks.clear()

    def shutdown(self) -> None:
        """
        Stop background sync, push what is queued and release resources.

        Each step runs even if an earlier one fails; the local cache is
        always closed last.
        """
        safe_execute(self.sync_engine.stop, error_message="Failed to stop sync engine")
        safe_execute(self.sync_engine.flush, error_message="Failed to flush queued sync work")
        if self.client is not None:
            safe_execute(self.client.close, error_message="Failed to close remote client")
        self.store.close()


def build_runtime(
    config: Optional[SupabaseConfig] = None,
    db_path: Optional[Path] = None,
    client: Optional[SupabaseRestClient] = None,
    quota_bytes: Optional[int] = None,
    push_interval: Optional[float] = None,
    clock: Callable[[], int] = now_ms,
    remote: bool = True,
) -> StorageRuntime:
    """
    Construct the storage runtime.

    Args:
        config: Remote configuration; loaded from secrets/env when omitted
        db_path: SQLite file for the local cache
        client: Pre-built remote client (tests pass a mock here)
        quota_bytes: Local storage quota
        push_interval: Seconds between periodic pushes
        clock: Epoch-ms clock shared by sessions and services
        remote: False to run purely on the local cache
    """
    if client is None and remote:
        try:
            client = SupabaseRestClient(config or load_supabase_config())
        except ConfigurationError as e:
            logger.warning(f"Remote sync disabled: {e}")
            client = None

    store = LocalCacheStore(db_path=db_path, quota_bytes=quota_bytes)
    engine = SyncEngine(store, client, push_interval=push_interval)
    data = ListDataService(store, engine)
    sessions = SessionManager(data, clock=clock)

    return StorageRuntime(
        store=store,
        client=client,
        sync_engine=engine,
        data=data,
        sessions=sessions,
        clock=clock,
    )


def initialize_storage(runtime: StorageRuntime, start_sync: bool = True) -> StorageRuntime:
    """
    Run the startup sequence.

    Remote failures only downgrade to local-only operation; the seed step
    always runs so a fresh install has a head admin and sample levels.
    """
    logger.info("=== Storage Initialization Started ===")
    try:
        runtime.remote_synced = runtime.sync_engine.bootstrap_pull()
        if not runtime.remote_synced:
            logger.warning("Remote sync failed, using local data only")

        initialize_database(runtime.data, clock=runtime.clock)

        if start_sync:
            runtime.sync_engine.start(periodic=True)
        logger.info("=== Storage Initialization Complete ===")
    except Exception as e:
        logger.error(f"Storage initialization failed: {e}")
        initialize_database(runtime.data, clock=runtime.clock)

    runtime._fire_ready()
    return runtime
