# =============================================================================
# demonlist_core/offline/sync_engine.py
# Synchronization Engine between the local cache and the remote data API
# =============================================================================
"""
SyncEngine - keeps the remote tables in step with the local cache.

Features:
- Bootstrap pull of all four collections in parallel, isolated per collection
- Deferred push: saves enqueue a whole-collection upsert on a background worker
- Deferred delete: removed records are deleted remotely by the same worker
- Periodic push of every collection on a fixed interval
- Sync status tracking and event callbacks

Remote failures are logged and counted, never raised: the local cache stays
the source of truth for the caller and works fully offline.
"""

from __future__ import annotations
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Set, Union
import logging

from demonlist_core.models import Collection

logger = logging.getLogger(__name__)

_STOP = object()


class _DeleteTask(NamedTuple):
    """Queued removal of one remote row."""
    collection: Collection
    record_id: str


@dataclass
class SyncState:
    """Current sync state."""
    last_pull: Optional[datetime] = None
    last_pull_success: Optional[datetime] = None
    last_pull_results: Dict[str, bool] = field(default_factory=dict)
    last_push: Optional[datetime] = None
    last_push_success: Optional[datetime] = None
    total_pushed: int = 0
    failed_pushes: int = 0
    failed_pulls: int = 0
    total_deleted: int = 0
    failed_deletes: int = 0
    periodic_passes: int = 0


class SyncEngine:
    """
    Synchronization engine for the four list collections.

    Usage:
        engine = SyncEngine(store, client)
        engine.bootstrap_pull()                      # at startup
        engine.start()                               # deferred + periodic push
        engine.schedule_push("users")                # after a local save
        engine.schedule_delete("levels", level_id)   # after a local removal
        engine.flush()                               # wait for queued work
        engine.stop()
    """

    # Configuration
    PUSH_INTERVAL = 120         # Seconds between periodic push passes
    STOP_TIMEOUT = 10           # Seconds to wait for threads on stop()

    def __init__(self, store, client, push_interval: Optional[float] = None):
        """
        Initialize sync engine.

        Args:
            store: LocalCacheStore holding the collections
            client: SupabaseRestClient (None = local only)
            push_interval: Override for the periodic push interval (seconds)
        """
        self._store = store
        self._client = client
        self.push_interval = push_interval if push_interval is not None else self.PUSH_INTERVAL
        self._state = SyncState()
        self._state_lock = threading.Lock()
        self._callbacks: List[Callable[[SyncState], None]] = []

        self._queue: queue.Queue = queue.Queue()
        self._pending: Set[Collection] = set()
        self._pending_lock = threading.Lock()
        self._worker_thread: Optional[threading.Thread] = None
        self._periodic_thread: Optional[threading.Thread] = None
        self._stop_periodic = threading.Event()

    @property
    def state(self) -> SyncState:
        """Get current sync state."""
        return self._state

    @property
    def remote_enabled(self) -> bool:
        """False when running without a remote client (local only)."""
        return self._client is not None

    @property
    def is_running(self) -> bool:
        return self._worker_thread is not None and self._worker_thread.is_alive()

    @property
    def pending_count(self) -> int:
        """Number of collections waiting for a deferred push."""
        with self._pending_lock:
            return len(self._pending)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, periodic: bool = True) -> None:
        """Start the push worker and, optionally, the periodic push loop."""
        if not self.is_running:
            self._worker_thread = threading.Thread(
                target=self._worker_loop,
                daemon=True,
                name="SyncPushWorker"
            )
            self._worker_thread.start()

        if periodic and (self._periodic_thread is None or not self._periodic_thread.is_alive()):
            self._stop_periodic.clear()
            self._periodic_thread = threading.Thread(
                target=self._periodic_loop,
                daemon=True,
                name="SyncPeriodicPush"
            )
            self._periodic_thread.start()

        logger.info(f"Sync engine started (periodic={periodic}, interval={self.push_interval}s)")

    def stop(self) -> None:
        """Stop background threads. Work still queued stays queued until flush()."""
        self._stop_periodic.set()
        if self._periodic_thread:
            self._periodic_thread.join(timeout=self.STOP_TIMEOUT)

        if self.is_running:
            self._queue.put(_STOP)
            self._worker_thread.join(timeout=self.STOP_TIMEOUT)

        logger.info("Sync engine stopped")

    def flush(self) -> None:
        """
        Wait until every scheduled push and delete has been attempted.

        With the worker running this blocks on the queue; otherwise the
        queued work is run in the calling thread, in queue order.
        """
        if self.is_running:
            self._queue.join()
            return

        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                if item is not _STOP:
                    self._run_queued(item)
            finally:
                self._queue.task_done()

    def _worker_loop(self) -> None:
        """Background push worker."""
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._run_queued(item)
            except Exception as e:
                logger.error(f"Push worker error: {e}")
            finally:
                self._queue.task_done()

    def _run_queued(self, item) -> None:
        if isinstance(item, _DeleteTask):
            self.delete_record(item.collection, item.record_id)
        else:
            self._run_scheduled_push(item)

    def _periodic_loop(self) -> None:
        """Background periodic push loop."""
        while not self._stop_periodic.is_set():
            # Wait for interval or stop signal
            if self._stop_periodic.wait(timeout=self.push_interval):
                break

            logger.info("Running periodic sync...")
            try:
                self.push_all()
                with self._state_lock:
                    self._state.periodic_passes += 1
            except Exception as e:
                logger.error(f"Periodic sync failed: {e}")

    # =========================================================================
    # PULL
    # =========================================================================

    def bootstrap_pull(self) -> bool:
        """
        Fetch all four collections concurrently and refresh the local cache.

        A failed fetch leaves that local collection untouched and does not
        affect the others.

        Returns:
            True if every collection refreshed, False on partial failure
        """
        if self._client is None:
            logger.info("No remote client configured, using local data only")
            return False

        logger.info("Syncing from remote...")
        started = datetime.now()
        with self._state_lock:
            self._state.last_pull = started
        results: Dict[str, bool] = {}

        try:
            with ThreadPoolExecutor(max_workers=len(Collection), thread_name_prefix="SyncPull") as pool:
                futures = {c: pool.submit(self._client.fetch_all, c) for c in Collection}

                for collection, future in futures.items():
                    try:
                        records = future.result()
                    except Exception as e:
                        logger.warning(f"Pull of {collection.value} failed, keeping local data: {e}")
                        results[collection.value] = False
                        continue
                    results[collection.value] = self._store.write(collection, records or [])
        except Exception as e:
            logger.error(f"Failed to sync from remote: {e}")
            return False
        finally:
            with self._state_lock:
                self._state.last_pull_results = results

        success = len(results) == len(Collection) and all(results.values())
        with self._state_lock:
            if success:
                self._state.last_pull_success = started
            else:
                self._state.failed_pulls += 1

        if success:
            logger.info("Sync from remote completed")
        else:
            failed = [name for name, ok in results.items() if not ok]
            logger.warning(f"Sync from remote partially failed: {failed}")

        self._notify_callbacks()
        return success

    # =========================================================================
    # PUSH
    # =========================================================================

    def schedule_push(self, collection: Union[Collection, str]) -> None:
        """
        Queue a deferred push of a whole collection and return immediately.

        A collection already waiting in the queue is not queued twice; the
        push always sends the collection as it is when the push runs.
        """
        collection = Collection.coerce(collection)
        with self._pending_lock:
            if collection in self._pending:
                return
            self._pending.add(collection)
        self._queue.put(collection)

    def _run_scheduled_push(self, collection: Collection) -> None:
        with self._pending_lock:
            self._pending.discard(collection)
        self.push_collection(collection)

    def push_collection(self, collection: Union[Collection, str]) -> bool:
        """
        Upsert the whole local collection to the remote table.

        Returns:
            True if pushed (or nothing to push), False if the push failed
        """
        collection = Collection.coerce(collection)
        records = self._store.read(collection)
        started = datetime.now()
        with self._state_lock:
            self._state.last_push = started

        if not records:
            return True
        if self._client is None:
            logger.debug(f"No remote client - skipping push of {collection.value}")
            return True

        logger.info(f"Syncing {collection.value} to remote... {len(records)} items")
        try:
            self._client.upsert(collection, records)
        except Exception as e:
            logger.warning(f"Failed to sync {collection.value}: {e}")
            with self._state_lock:
                self._state.failed_pushes += 1
            self._notify_callbacks()
            return False

        with self._state_lock:
            self._state.total_pushed += len(records)
            self._state.last_push_success = started
        self._notify_callbacks()
        return True

    def push_all(self) -> Dict[str, bool]:
        """Push every collection in sequence; a failure does not stop the rest."""
        results = {}
        for collection in Collection:
            results[collection.value] = self.push_collection(collection)
        return results

    # =========================================================================
    # DELETE
    # =========================================================================

    def schedule_delete(self, collection: Union[Collection, str], record_id: str) -> None:
        """
        Queue a deferred delete of one remote row and return immediately.

        Upserts never remove rows, so records dropped from a local collection
        must be deleted explicitly or the next pull brings them back.
        """
        if not record_id:
            return
        self._queue.put(_DeleteTask(Collection.coerce(collection), record_id))

    def delete_record(self, collection: Union[Collection, str], record_id: str) -> bool:
        """
        Delete one row from the remote table by id.

        Returns:
            True if deleted (or no remote configured), False if the delete failed
        """
        collection = Collection.coerce(collection)
        if self._client is None:
            logger.debug(f"No remote client - skipping delete of {collection.value}/{record_id}")
            return True

        logger.info(f"Deleting {collection.value}/{record_id} from remote")
        try:
            self._client.delete_by_id(collection, record_id)
        except Exception as e:
            logger.warning(f"Failed to delete {collection.value}/{record_id}: {e}")
            with self._state_lock:
                self._state.failed_deletes += 1
            self._notify_callbacks()
            return False

        with self._state_lock:
            self._state.total_deleted += 1
        self._notify_callbacks()
        return True

    # =========================================================================
    # CALLBACKS / STATUS
    # =========================================================================

    def register_callback(self, callback: Callable[[SyncState], None]) -> None:
        """Register a callback for sync state changes."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[SyncState], None]) -> None:
        """Remove a registered callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        """Notify all registered callbacks."""
        for callback in self._callbacks:
            try:
                callback(self._state)
            except Exception as e:
                logger.error(f"Error in sync callback: {e}")

    def get_status_display(self) -> Dict[str, Any]:
        """Get sync status for UI display."""
        with self._state_lock:
            state = self._state
            return {
                "running": self.is_running,
                "remote_enabled": self.remote_enabled,
                "last_pull": state.last_pull.isoformat() if state.last_pull else None,
                "last_pull_results": dict(state.last_pull_results),
                "last_push": state.last_push.isoformat() if state.last_push else None,
                "last_push_success": state.last_push_success.isoformat() if state.last_push_success else None,
                "pending_count": self.pending_count,
                "failed_pushes": state.failed_pushes,
                "failed_pulls": state.failed_pulls,
                "total_pushed": state.total_pushed,
                "failed_deletes": state.failed_deletes,
                "total_deleted": state.total_deleted,
            }
