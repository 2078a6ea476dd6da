# =============================================================================
# demonlist_core/services/moderation_service.py
# Moderation: approvals, list ordering, bans and roles
# =============================================================================
"""
ModerationService - every action a mod or head admin can take.

Each action is one synchronous read-mutate-write unit over the local cache
followed by exactly one audit entry. Placement invariant: published levels
always carry placements 1..N with no gaps or duplicates.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Union

from demonlist_core.errors import (
    DomainValidationError,
    InvalidBanTargetError,
    LevelNotFoundError,
    SubmissionNotFoundError,
    UserNotFoundError,
)
from demonlist_core.models import (
    ALL_TAGS,
    BAN_FIELDS,
    DAY_MS,
    Collection,
    PERMANENT_BAN,
    Level,
    LevelStatus,
    Role,
    SubmissionStatus,
    SubmissionType,
    youtube_thumbnail,
)
from demonlist_core.services.base_service import BaseService
from demonlist_core.services.ranking import points_for_placement

Record = Dict[str, Any]

RECENT_AUDIT_LIMIT = 50
SEARCH_LIMIT = 10


# =============================================================================
# BAN QUERIES (pure)
# =============================================================================

def is_ban_active(user: Record, now: int) -> bool:
    """Whether a user is banned at ``now`` (epoch ms)."""
    until = user.get("banned_until")
    if not until:
        return False
    if until == PERMANENT_BAN:
        return True
    try:
        return now < int(until)
    except (TypeError, ValueError):
        return False


def ban_has_expired(user: Record, now: int) -> bool:
    """Whether a user carries ban fields for a ban that is over."""
    return bool(user.get("banned_until")) and not is_ban_active(user, now)


def normalize_tags(tags: Union[str, List[str], None]) -> List[str]:
    """
    Parse tags from a list or comma separated string.

    Raises:
        DomainValidationError: for tags outside the fixed vocabulary
    """
    if isinstance(tags, str):
        tags = tags.split(",")
    cleaned = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)

    unknown = [t for t in cleaned if t not in ALL_TAGS]
    if unknown:
        raise DomainValidationError("Unknown tag", field="tags", value=unknown)
    return cleaned


def renumber_placements(levels: List[Record]) -> List[Record]:
    """Re-assign placements 1..N to published levels in their current order."""
    published = sorted(
        (lv for lv in levels if lv.get("status") == LevelStatus.PUBLISHED.value),
        key=lambda lv: lv.get("placement") or 999,
    )
    for idx, level in enumerate(published):
        level["placement"] = idx + 1
    return levels


class ModerationService(BaseService):
    """Moderator actions over the local collections."""

    # =========================================================================
    # SUBMISSIONS
    # =========================================================================

    def pending_submissions(self) -> List[Record]:
        return [s for s in self.data.get_submissions() if s.get("status") == SubmissionStatus.PENDING.value]

    def _take_submission(self, submission_id: str):
        subs = self.data.get_submissions()
        sub = next((s for s in subs if s.get("id") == submission_id), None)
        if sub is None or sub.get("status") != SubmissionStatus.PENDING.value:
            raise SubmissionNotFoundError(submission_id)
        remaining = [s for s in subs if s.get("id") != submission_id]
        return sub, remaining

    def _drop_submission(self, sub: Record, remaining: List[Record]) -> None:
        """Save the queue without a resolved submission and delete its remote row."""
        self.data.save_submissions(remaining)
        self.data.delete_remote(Collection.SUBMISSIONS, sub.get("id"))

    def approve_submission(self, submission_id: str, actor: str) -> Dict[str, Any]:
        """
        Approve a pending level or completion submission.

        Returns:
            For levels: ``{"type": "level", "level": <record>}``
            For completions: ``{"type": "completion", "points_awarded": int,
            "duplicate": bool, "username": str}``
        """
        self.require_moderator(actor)
        sub, remaining = self._take_submission(submission_id)

        if sub.get("type") == SubmissionType.LEVEL.value:
            return self._approve_level(sub, remaining, actor)
        if sub.get("type") == SubmissionType.COMPLETION.value:
            return self._approve_completion(sub, remaining, actor)
        raise DomainValidationError("Unknown submission type", field="type", value=sub.get("type"))

    def _approve_level(self, sub: Record, remaining: List[Record], actor: str) -> Dict[str, Any]:
        levels = self.data.get_levels()
        max_placement = max(
            (lv.get("placement") or 0 for lv in levels if lv.get("status") == LevelStatus.PUBLISHED.value),
            default=0,
        )

        level = Level(
            name=sub.get("name") or "",
            placement=max_placement + 1,
            creators=list(sub.get("creators") or []),
            level_id=sub.get("level_id") or "",
            youtube=sub.get("youtube") or "",
            thumbnail=youtube_thumbnail(sub.get("youtube")),
            tags=list(sub.get("tags") or []),
            submitter=sub.get("submitter"),
            approved_by=actor,
            approved_at=self.clock(),
        ).to_record()

        levels.append(level)
        self.data.save_levels(levels)
        self._drop_submission(sub, remaining)
        self.audit(
            "approve_level",
            actor=actor,
            target=level["id"],
            details={"name": level["name"], "placement": level["placement"]},
        )
        self.logger.info(f"Level '{level['name']}' approved at #{level['placement']}")
        return {"type": SubmissionType.LEVEL.value, "level": level}

    def _approve_completion(self, sub: Record, remaining: List[Record], actor: str) -> Dict[str, Any]:
        level_ref = sub.get("level_ref")
        level = next((lv for lv in self.data.get_levels() if lv.get("id") == level_ref), None)
        if level is None:
            raise LevelNotFoundError(level_ref)

        users = self.data.get_users()
        user = self.data.find_user(users, username=sub.get("submitter"))
        if user is None:
            # Nobody to award; drop the orphaned submission
            self._drop_submission(sub, remaining)
            self.audit("discard_submission", actor=actor, target=sub.get("id"),
                       details={"reason": "submitter_missing", "submitter": sub.get("submitter")})
            raise UserNotFoundError(sub.get("submitter"))

        pts = points_for_placement(level.get("placement"))
        records = user.setdefault("completed_records", [])
        duplicate = any(
            r.get("level_id") == level_ref and r.get("youtube") == sub.get("youtube")
            for r in records
        )

        awarded = 0
        if not duplicate:
            awarded = pts
            user["points"] = (user.get("points") or 0) + pts
            records.append({
                "level_id": level_ref,
                "level_name": sub.get("level_name") or level.get("name") or "",
                "ts": self.clock(),
                "percent": sub.get("percent"),
                "youtube": sub.get("youtube"),
                "awarded_points": pts,
            })
            self.data.save_users(users)

        self._drop_submission(sub, remaining)
        self.audit(
            "approve_completion",
            actor=actor,
            target=sub.get("id"),
            details={
                "submitter": user.get("username"),
                "level": level_ref,
                "points": awarded,
                "percent": sub.get("percent"),
                "duplicate": duplicate,
            },
        )
        return {
            "type": SubmissionType.COMPLETION.value,
            "points_awarded": awarded,
            "duplicate": duplicate,
            "username": user.get("username"),
        }

    def reject_submission(self, submission_id: str, actor: str) -> Record:
        self.require_moderator(actor)
        sub, remaining = self._take_submission(submission_id)
        self._drop_submission(sub, remaining)
        self.audit("reject_submission", actor=actor, target=submission_id,
                   details={"type": sub.get("type"), "submitter": sub.get("submitter")})
        return sub

    # =========================================================================
    # LIST ORDERING
    # =========================================================================

    def swap_placement(self, level_id: str, direction: int, actor: str) -> bool:
        """
        Move a published level up (-1) or down (+1) by one position.

        Returns:
            False when the move is out of range (no change made)
        """
        self.require_moderator(actor)
        if direction not in (-1, 1):
            raise DomainValidationError("Direction must be -1 or 1", field="direction", value=direction)

        levels = self.data.get_levels()
        published = sorted(
            (lv for lv in levels if lv.get("status") == LevelStatus.PUBLISHED.value),
            key=lambda lv: lv.get("placement") or 999,
        )
        idx = next((i for i, lv in enumerate(published) if lv.get("id") == level_id), None)
        if idx is None:
            raise LevelNotFoundError(level_id)

        new_idx = idx + direction
        if new_idx < 0 or new_idx >= len(published):
            return False

        a, b = published[idx], published[new_idx]
        a["placement"], b["placement"] = b["placement"], a["placement"]
        levels.sort(key=lambda lv: lv.get("placement") or 999)

        self.data.save_levels(levels)
        self.audit("swap_placement", actor=actor, target=level_id,
                   details={"dir": direction, "placement": a["placement"]})
        return True

    def remove_level(self, level_id: str, actor: str) -> Record:
        """Delete a level and renumber the remaining published placements."""
        self.require_moderator(actor)
        levels = self.data.get_levels()
        level = next((lv for lv in levels if lv.get("id") == level_id), None)
        if level is None:
            raise LevelNotFoundError(level_id)

        remaining = renumber_placements([lv for lv in levels if lv.get("id") != level_id])
        remaining.sort(key=lambda lv: lv.get("placement") or 999)
        self.data.save_levels(remaining)
        self.data.delete_remote(Collection.LEVELS, level_id)
        self.audit("remove_level", actor=actor, target=level_id, details={"name": level.get("name")})
        return level

    def edit_tags(self, level_id: str, tags: Union[str, List[str]], actor: str) -> List[str]:
        self.require_moderator(actor)
        new_tags = normalize_tags(tags)

        levels = self.data.get_levels()
        level = next((lv for lv in levels if lv.get("id") == level_id), None)
        if level is None:
            raise LevelNotFoundError(level_id)

        level["tags"] = new_tags
        self.data.save_levels(levels)
        self.audit("edit_tags", actor=actor, target=level_id, details={"tags": new_tags})
        return new_tags

    # =========================================================================
    # BANS
    # =========================================================================

    def ban_user(self, username: str, days: int, reason: Optional[str], actor: str) -> Record:
        """
        Ban a user for a number of days; ``days == 0`` bans permanently.

        Raises:
            InvalidBanTargetError: when targeting the head admin
        """
        self.require_moderator(actor)
        username = (username or "").strip()
        if not username:
            raise DomainValidationError("Enter a username", field="username")
        if not isinstance(days, int) or days < 0:
            raise DomainValidationError("Days must be a non-negative integer", field="days", value=days)

        users = self.data.get_users()
        target = self.data.find_user(users, username=username)
        if target is None:
            raise UserNotFoundError(username)
        if target.get("role") == Role.HEADADMIN.value:
            raise InvalidBanTargetError("You cannot ban the Head Admin", username=username)

        now = self.clock()
        target["banned_until"] = PERMANENT_BAN if days == 0 else now + days * DAY_MS
        target["ban_reason"] = reason or "No reason"
        target["banned_by"] = actor
        target["banned_at"] = now
        self.data.save_users(users)

        self.audit("ban", actor=actor, target=username,
                   details={"until": target["banned_until"], "reason": target["ban_reason"]})
        return target

    def unban_user(self, username: str, actor: str) -> Record:
        self.require_moderator(actor)
        users = self.data.get_users()
        target = self.data.find_user(users, username=username)
        if target is None:
            raise UserNotFoundError(username)

        for key in BAN_FIELDS:
            target.pop(key, None)
        self.data.save_users(users)
        self.audit("unban", actor=actor, target=username)
        return target

    def banned_users(self) -> List[Record]:
        return [u for u in self.data.get_users() if u.get("banned_until")]

    def clear_expired_ban(self, username: str) -> bool:
        """
        Remove the ban fields of a user whose ban has run out.

        Returns:
            True if a stale ban was cleared
        """
        users = self.data.get_users()
        user = self.data.find_user(users, username=username)
        if user is None or not ban_has_expired(user, self.clock()):
            return False

        for key in BAN_FIELDS:
            user.pop(key, None)
        self.data.save_users(users)
        self.audit("ban_expired", actor="system", target=username)
        return True

    def clear_expired_bans(self) -> List[str]:
        """Clear every expired ban; returns the affected usernames."""
        now = self.clock()
        users = self.data.get_users()
        cleared = []
        for user in users:
            if ban_has_expired(user, now):
                for key in BAN_FIELDS:
                    user.pop(key, None)
                cleared.append(user.get("username"))

        if cleared:
            self.data.save_users(users)
            for username in cleared:
                self.audit("ban_expired", actor="system", target=username)
        return cleared

    def active_ban(self, username: str) -> Optional[Record]:
        """
        Ban details for a currently banned user, else None.

        Expired bans are cleaned up first.
        """
        self.clear_expired_ban(username)
        user = self.get_user(username)
        if user is None or not is_ban_active(user, self.clock()):
            return None
        return {
            "username": username,
            "banned_until": user.get("banned_until"),
            "ban_reason": user.get("ban_reason") or "No reason provided",
            "banned_by": user.get("banned_by"),
        }

    # =========================================================================
    # ROLES
    # =========================================================================

    def promote_user(self, username: str, actor: str) -> str:
        """user -> mod -> headadmin."""
        self.require_moderator(actor)
        users = self.data.get_users()
        target = self.data.find_user(users, username=username)
        if target is None:
            raise UserNotFoundError(username)
        if target.get("role") == Role.HEADADMIN.value:
            raise InvalidBanTargetError("User is already Head Admin", username=username)

        target["role"] = Role.HEADADMIN.value if target.get("role") == Role.MOD.value else Role.MOD.value
        self.data.save_users(users)
        self.audit("promote", actor=actor, target=username, details={"role": target["role"]})
        return target["role"]

    def demote_user(self, username: str, actor: str) -> str:
        self.require_moderator(actor)
        users = self.data.get_users()
        target = self.data.find_user(users, username=username)
        if target is None:
            raise UserNotFoundError(username)
        if target.get("role") == Role.HEADADMIN.value:
            raise InvalidBanTargetError("Cannot demote headadmin", username=username)

        target["role"] = Role.USER.value
        self.data.save_users(users)
        self.audit("demote", actor=actor, target=username, details={"role": target["role"]})
        return target["role"]

    # =========================================================================
    # READ-ONLY VIEWS
    # =========================================================================

    def recent_audit(self, limit: int = RECENT_AUDIT_LIMIT) -> List[Record]:
        entries = sorted(self.data.get_audit(), key=lambda e: e.get("created_at") or 0, reverse=True)
        return entries[:limit]

    def search_players(self, query: str, limit: int = SEARCH_LIMIT) -> List[Record]:
        q = (query or "").strip().lower()
        if not q:
            return []
        return [u for u in self.data.get_users() if q in (u.get("username") or "").lower()][:limit]
