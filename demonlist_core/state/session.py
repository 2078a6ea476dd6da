# =============================================================================
# demonlist_core/state/session.py
# Active-user session tracking with lazy idle expiry
# =============================================================================

from __future__ import annotations
from typing import Any, Callable, Dict, Optional

from demonlist_core.logging import get_logger
from demonlist_core.models import DAY_MS, now_ms

logger = get_logger(__name__)

# Sessions idle for this long (or longer) are discarded on the next read
SESSION_TIMEOUT_MS = DAY_MS


class SessionManager:
    """
    Tracks the signed-in user in the local cache.

    Expiry is checked on every ``get_session()`` call; there is no timer.
    """

    def __init__(self, data, clock: Callable[[], int] = now_ms, timeout_ms: int = SESSION_TIMEOUT_MS):
        """
        Args:
            data: ListDataService (its store holds the session entry)
            clock: Returns the current time in epoch milliseconds
            timeout_ms: Idle time after which a session expires
        """
        self._data = data
        self._store = data.store
        self._clock = clock
        self.timeout_ms = timeout_ms

    def set_session(self, session_data: Dict[str, Any], audit: bool = True) -> bool:
        """
        Start a session and record the user's last login.

        Args:
            session_data: At least ``username`` and/or ``user_id``
            audit: Write a ``login`` audit entry (off when the caller audits
                the change itself, e.g. sign-up)
        """
        ts = self._clock()
        session = {**session_data, "created_at": ts, "last_active": ts}
        if not self._store.write_session(session):
            return False

        users = self._data.get_users()
        user = self._data.find_user(
            users,
            username=session_data.get("username"),
            user_id=session_data.get("user_id"),
        )
        if user is not None:
            user["last_login"] = ts
            self._data.save_users(users)
            if audit:
                self._data.add_audit(
                    "login",
                    actor=user.get("username"),
                    target=user.get("id"),
                    created_at=ts,
                )

        logger.info(f"Session started for {session_data.get('username') or session_data.get('user_id')}")
        return True

    def is_expired(self, session: Dict[str, Any], now: Optional[int] = None) -> bool:
        """Whether the session's idle time has reached the timeout."""
        now = self._clock() if now is None else now
        last_active = session.get("last_active")
        if not isinstance(last_active, (int, float)):
            return True
        return now - last_active >= self.timeout_ms

    def get_session(self) -> Optional[Dict[str, Any]]:
        """
        Return the active session, refreshing its last-active time.

        Returns None (and clears storage) when the session has expired.
        """
        session = self._store.read_session()
        if session is None:
            return None

        now = self._clock()
        if self.is_expired(session, now):
            logger.info("Session expired after inactivity")
            self._store.remove_session()
            return None

        session["last_active"] = now
        self._store.write_session(session)
        return session

    def clear_session(self) -> bool:
        """End the session, writing a logout audit entry if a user was signed in."""
        session = self._store.read_session()
        removed = self._store.remove_session()

        if session and (session.get("user_id") or session.get("username")):
            actor = session.get("username") or session.get("user_id")
            self._data.add_audit(
                "logout",
                actor=actor,
                target=session.get("user_id") or actor,
                details={"timestamp": self._clock()},
                created_at=self._clock(),
            )
        return removed

    def current_user(self) -> Optional[Dict[str, Any]]:
        """The user record for the active session, if any."""
        session = self.get_session()
        if session is None:
            return None
        return self._data.find_user(
            self._data.get_users(),
            username=session.get("username"),
            user_id=session.get("user_id"),
        )
