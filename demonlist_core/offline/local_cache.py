# =============================================================================
# demonlist_core/offline/local_cache.py
# Local key-value cache for the four collections and the session
# =============================================================================
"""
LocalCacheStore - SQLite-backed key-value store playing the role of the
browser's localStorage.

Features:
- One text (JSON) entry per fixed, versioned key
- Total read/write API: never raises to the caller
- Optional storage quota (bytes) to mimic browser limits
- Thread-local connections so sync workers can read collections
"""

from __future__ import annotations
import copy
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

import pandas as pd

from demonlist_core.errors import StorageError
from demonlist_core.models import Collection

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class LocalCacheStore:
    """
    Persistent local cache of users, levels, submissions, audit log and session.

    The key names double as the persisted-format version: data written under
    a different version of a key is never read and behaves as absent.
    """

    DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "local_data" / "demonlist.db"

    COLLECTION_KEYS = {
        Collection.USERS: "dl_users_v1_explicit",
        Collection.LEVELS: "dl_levels_v1_explicit",
        Collection.SUBMISSIONS: "dl_subs_v1_explicit",
        Collection.AUDIT_LOG: "dl_audit_v1",
    }
    SESSION_KEY = "dl_session_v1_explicit"

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT
        )
    """

    def __init__(self, db_path: Optional[Path] = None, quota_bytes: Optional[int] = None):
        """
        Initialize the local cache.

        Args:
            db_path: Path to the SQLite file
            quota_bytes: Maximum total size of stored values (None = unlimited)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.quota_bytes = quota_bytes
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._initialized = False
        self.initialize()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(str(self.db_path), timeout=10)
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Create the key-value table if needed."""
        if self._initialized:
            return

        try:
            with self.transaction() as conn:
                conn.execute(self.SCHEMA)
            self._initialized = True
            logger.info(f"Local cache initialized at: {self.db_path}")
        except sqlite3.Error as e:
            logger.warning(f"Local cache could not be initialized at {self.db_path}: {e}")

    # =========================================================================
    # RAW KEY-VALUE OPERATIONS
    # =========================================================================

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored text for a key, or None."""
        row = self._get_connection().execute(
            "SELECT value FROM kv_store WHERE key = ?", [key]
        ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        """
        Store text under a key.

        Raises:
            StorageError: if the quota would be exceeded or SQLite fails
        """
        with self._write_lock:
            try:
                if self.quota_bytes is not None:
                    used = self._get_connection().execute(
                        "SELECT COALESCE(SUM(LENGTH(CAST(value AS BLOB))), 0) "
                        "FROM kv_store WHERE key != ?",
                        [key],
                    ).fetchone()[0]
                    needed = used + len(value.encode("utf-8"))
                    if needed > self.quota_bytes:
                        raise StorageError(
                            f"Quota exceeded ({needed} > {self.quota_bytes} bytes)",
                            key=key,
                        )

                with self.transaction() as conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                        [key, value, datetime.now().isoformat()],
                    )
            except sqlite3.Error as e:
                raise StorageError(f"SQLite write failed: {e}", key=key) from e

    def remove_item(self, key: str) -> None:
        with self._write_lock, self.transaction() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", [key])

    def keys(self) -> List[str]:
        """All keys currently stored, including other format versions."""
        try:
            rows = self._get_connection().execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        except sqlite3.Error as e:
            logger.warning(f"storage: could not list keys: {e}")
            return []
        return [row[0] for row in rows]

    def clear(self) -> bool:
        """Remove every stored entry (all collections and the session)."""
        try:
            with self._write_lock, self.transaction() as conn:
                conn.execute("DELETE FROM kv_store")
        except sqlite3.Error as e:
            logger.warning(f"storage: clear failed: {e}")
            return False
        logger.info("Local cache cleared")
        return True

    # =========================================================================
    # COLLECTIONS
    # =========================================================================

    def key_for(self, collection: Union[Collection, str]) -> str:
        return self.COLLECTION_KEYS[Collection.coerce(collection)]

    def read(
        self,
        collection: Union[Collection, str],
        fallback: Optional[List[Record]] = None,
    ) -> List[Record]:
        """
        Read a collection.

        Returns a deep copy of ``fallback`` (default: empty list) when the
        entry is missing, unreadable, or not a JSON list.
        """
        key = self.key_for(collection)
        default = fallback if fallback is not None else []

        try:
            raw = self.get_item(key)
        except sqlite3.Error as e:
            logger.warning(f"storage: read error {key}: {e}")
            return copy.deepcopy(default)

        if not raw:
            logger.debug(f"storage: {key} not present, using fallback")
            return copy.deepcopy(default)

        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.warning(f"storage: read parse error {key}: {e}")
            return copy.deepcopy(default)

        if not isinstance(parsed, list):
            logger.warning(f"storage: {key} does not hold a list, using fallback")
            return copy.deepcopy(default)

        return parsed

    def write(self, collection: Union[Collection, str], records: Optional[List[Record]]) -> bool:
        """
        Persist a collection.

        Returns:
            True if stored; False (prior state untouched) on any failure
        """
        key = self.key_for(collection)
        try:
            text = json.dumps(records or [])
            self.set_item(key, text)
            return True
        except (TypeError, ValueError) as e:
            logger.warning(f"storage: write serialization error {key}: {e}")
        except StorageError as e:
            logger.warning(f"storage: write error {key}: {e}")
        return False

    def to_dataframe(self, collection: Union[Collection, str]) -> pd.DataFrame:
        """Load a collection into a pandas DataFrame (one row per record)."""
        return pd.DataFrame(self.read(collection))

    # =========================================================================
    # SESSION
    # =========================================================================

    def read_session(self) -> Optional[Dict[str, Any]]:
        try:
            raw = self.get_item(self.SESSION_KEY)
            if not raw:
                return None
            session = json.loads(raw)
        except (sqlite3.Error, ValueError) as e:
            logger.warning(f"storage: session read error: {e}")
            return None
        return session if isinstance(session, dict) else None

    def write_session(self, session: Dict[str, Any]) -> bool:
        try:
            self.set_item(self.SESSION_KEY, json.dumps(session))
            return True
        except (TypeError, ValueError, StorageError) as e:
            logger.warning(f"storage: session write error: {e}")
            return False

    def remove_session(self) -> bool:
        try:
            self.remove_item(self.SESSION_KEY)
            return True
        except sqlite3.Error as e:
            logger.warning(f"storage: session remove error: {e}")
            return False

    def close(self) -> None:
        """Close this thread's database connection."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None
