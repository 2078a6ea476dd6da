# =============================================================================
# demonlist_core/services/account_service.py
# Sign-up, login/logout and profile editing
# =============================================================================
"""
AccountService - everything a player does to their own account.

Passwords are stored and compared as plain text; securing them is out of
scope for this package.
"""

from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from demonlist_core.errors import (
    DomainValidationError,
    DuplicateUsernameError,
    PermissionDeniedError,
    UserNotFoundError,
)
from demonlist_core.models import PERMANENT_BAN, User, now_ms
from demonlist_core.services.base_service import BaseService
from demonlist_core.services.moderation_service import ModerationService
from demonlist_core.services.ranking import TITLES_BY_ID, can_equip_title

Record = Dict[str, Any]

USERNAME_RE = re.compile(r"^[A-Za-z0-9()\[\]{}._\-?!]+$")
MIN_PASSWORD_LENGTH = 6
MAX_BIO_LENGTH = 250


def format_ban_end(banned_until: Any) -> str:
    if banned_until == PERMANENT_BAN:
        return "Permanent"
    try:
        ts = datetime.fromtimestamp(int(banned_until) / 1000, tz=timezone.utc)
    except (TypeError, ValueError):
        return str(banned_until)
    return ts.strftime("%Y-%m-%d %H:%M UTC")


class AccountService(BaseService):
    """Account lifecycle on top of the session manager."""

    def __init__(self, data, sessions, clock: Callable[[], int] = now_ms):
        """
        Args:
            data: ListDataService
            sessions: SessionManager that tracks the signed-in user
            clock: Returns the current time in epoch milliseconds
        """
        super().__init__(data, clock=clock)
        self.sessions = sessions
        self.moderation = ModerationService(data, clock=clock)

    # =========================================================================
    # SIGN-UP / LOGIN
    # =========================================================================

    def sign_up(self, username: str, password: str, nationality: str) -> Record:
        """
        Create an account and open a session for it.

        Raises:
            DomainValidationError: missing fields, short password, bad username
            DuplicateUsernameError: name taken (case-insensitive)
        """
        username = (username or "").strip()
        password = password or ""
        nationality = (nationality or "").strip()

        if not username or not password or not nationality:
            raise DomainValidationError("Please fill all fields")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise DomainValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
            )
        if not USERNAME_RE.match(username):
            raise DomainValidationError(
                "Invalid username: no spaces; allowed A-Z, 0-9, (), [], {}, ., _, -, ?, !",
                field="username",
                value=username,
            )

        users = self.data.get_users()
        if any((u.get("username") or "").lower() == username.lower() for u in users):
            raise DuplicateUsernameError(username)

        user = User(
            username=username,
            password=password,
            nationality=nationality,
            created_at=self.clock(),
        ).to_record()
        users.append(user)
        self.data.save_users(users)
        self.audit("signup", actor=username, target=user["id"])

        self.sessions.set_session({"username": username, "user_id": user["id"]}, audit=False)
        self.logger.info(f"New account: {username}")
        return user

    def login(self, username: str, password: str) -> Record:
        """
        Check credentials and open a session.

        Raises:
            DomainValidationError: bad credentials or an active ban
        """
        username = (username or "").strip()
        user = self.get_user(username)
        if user is None or user.get("password") != (password or ""):
            raise DomainValidationError("Invalid username or password", field="username")

        ban = self.moderation.active_ban(username)
        if ban is not None:
            raise DomainValidationError(
                f"You are banned until {format_ban_end(ban['banned_until'])}: {ban['ban_reason']}",
                field="banned_until",
                value=ban["banned_until"],
            )

        self.sessions.set_session({"username": username, "user_id": user.get("id")})
        return self.get_user(username)

    def logout(self) -> bool:
        return self.sessions.clear_session()

    # =========================================================================
    # PROFILE
    # =========================================================================

    def _require_self(self, username: str) -> Record:
        current = self.sessions.current_user()
        if current is None or current.get("username") != username:
            raise PermissionDeniedError("You can only edit your own profile", actor=username)
        return current

    def update_profile(
        self,
        username: str,
        bio: Optional[str] = None,
        profile_pic: Optional[str] = None,
        show_country: Optional[bool] = None,
    ) -> Record:
        """Edit the signed-in user's profile. Bio is cut to 250 characters."""
        self._require_self(username)
        users = self.data.get_users()
        user = self.data.find_user(users, username=username)
        if user is None:
            raise UserNotFoundError(username)

        changed = {}
        if bio is not None:
            user["bio"] = changed["bio"] = bio[:MAX_BIO_LENGTH]
        if profile_pic is not None:
            user["profile_pic"] = changed["profile_pic"] = profile_pic
        if show_country is not None:
            user["show_country"] = changed["show_country"] = bool(show_country)

        if changed:
            self.data.save_users(users)
            self.audit("edit_profile", actor=username, target=user.get("id"), details=changed)
        return user

    def equip_title(self, username: str, title_id: str) -> Record:
        self._require_self(username)
        if title_id not in TITLES_BY_ID:
            raise DomainValidationError("Unknown title", field="equipped_title", value=title_id)

        users = self.data.get_users()
        user = self.data.find_user(users, username=username)
        if user is None:
            raise UserNotFoundError(username)
        if not can_equip_title(user, title_id, users):
            raise DomainValidationError(
                f"You do not meet the requirement: {TITLES_BY_ID[title_id].req_text}",
                field="equipped_title",
                value=title_id,
            )

        user["equipped_title"] = title_id
        self.data.save_users(users)
        self.audit("equip_title", actor=username, target=user.get("id"), details={"title": title_id})
        return user
