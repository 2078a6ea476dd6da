# =============================================================================
# demonlist_core/offline/data_service.py
# Collection accessors - single get/save API for presentation code
# =============================================================================
"""
ListDataService - the read/write API the rest of the app uses.

Reads come straight from the local cache. Saves write the local cache
synchronously and then schedule a deferred remote push through the
SyncEngine; the caller never waits on the network.

Usage:
------
users = data.get_users()
users.append(new_user)
data.save_users(users)      # local write now, remote upsert later
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Union
import logging

from demonlist_core.models import AuditEntry, Collection, LevelStatus

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class ListDataService:
    """Collection accessors over the local cache with deferred remote push."""

    def __init__(self, store, sync_engine=None):
        """
        Args:
            store: LocalCacheStore
            sync_engine: SyncEngine used for deferred pushes (None = local only)
        """
        self._store = store
        self._sync_engine = sync_engine

    @property
    def store(self):
        return self._store

    @property
    def sync_engine(self):
        return self._sync_engine

    # =========================================================================
    # GENERIC ACCESSORS
    # =========================================================================

    def get(self, collection: Union[Collection, str]) -> List[Record]:
        records = self._store.read(collection)
        logger.debug(f"get {Collection.coerce(collection).value}: {len(records)} records")
        return records

    def save(self, collection: Union[Collection, str], records: Optional[List[Record]]) -> bool:
        """
        Write a collection locally and schedule its remote push.

        Returns:
            Whether the local write succeeded
        """
        collection = Collection.coerce(collection)
        records = records or []
        logger.debug(f"save {collection.value}: {len(records)} records")

        ok = self._store.write(collection, records)
        if ok and self._sync_engine is not None:
            self._sync_engine.schedule_push(collection)
        return ok

    def delete_remote(self, collection: Union[Collection, str], *record_ids: str) -> None:
        """
        Schedule remote deletes for records already dropped from a local save.

        Call after the save that removed them, so a pull can never restore them.
        """
        if self._sync_engine is None:
            return
        for record_id in record_ids:
            self._sync_engine.schedule_delete(collection, record_id)

    # =========================================================================
    # TYPED ACCESSORS
    # =========================================================================

    def get_users(self) -> List[Record]:
        return self.get(Collection.USERS)

    def save_users(self, users: List[Record]) -> bool:
        return self.save(Collection.USERS, users)

    def get_levels(self) -> List[Record]:
        return self.get(Collection.LEVELS)

    def save_levels(self, levels: List[Record]) -> bool:
        return self.save(Collection.LEVELS, levels)

    def get_submissions(self) -> List[Record]:
        return self.get(Collection.SUBMISSIONS)

    def save_submissions(self, submissions: List[Record]) -> bool:
        return self.save(Collection.SUBMISSIONS, submissions)

    def get_audit(self) -> List[Record]:
        return self.get(Collection.AUDIT_LOG)

    def save_audit(self, entries: List[Record]) -> bool:
        return self.save(Collection.AUDIT_LOG, entries)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def add_audit(
        self,
        action: str,
        actor: Optional[str] = None,
        target: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        created_at: Optional[int] = None,
    ) -> Record:
        """Insert an audit entry at the front of the log (newest first)."""
        entry = AuditEntry(action=action, actor=actor, target=target, details=details or {})
        if created_at is not None:
            entry.created_at = created_at
        record = entry.to_record()

        entries = self.get_audit()
        entries.insert(0, record)
        self.save_audit(entries)
        return record

    @staticmethod
    def find_user(
        users: List[Record],
        username: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Optional[Record]:
        """Find a user in an already-loaded list by id, falling back to exact username."""
        if user_id is not None:
            match = next((u for u in users if u.get("id") == user_id), None)
            if match is not None:
                return match
        if username is not None:
            return next((u for u in users if u.get("username") == username), None)
        return None

    def published_levels(self) -> List[Record]:
        """Published levels sorted by placement (ascending)."""
        levels = [lv for lv in self.get_levels() if lv.get("status") == LevelStatus.PUBLISHED.value]
        return sorted(levels, key=lambda lv: lv.get("placement") or 999)
