# =============================================================================
# demonlist_core/models.py
# Record types and fixed vocabularies for the four collections
# =============================================================================
"""
Record model for users, levels, submissions and audit entries.

Collections are stored and synced as lists of plain dicts (the remote table
rows). The dataclasses below are used when *creating* records so that every
new row carries the full set of columns; ``to_record()`` converts them to the
dict form the cache and the remote API understand.
"""

from __future__ import annotations
import time
import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Collection(Enum):
    """The four synced collections; values are the remote table names."""
    USERS = "users"
    LEVELS = "levels"
    SUBMISSIONS = "submissions"
    AUDIT_LOG = "audit_log"

    @classmethod
    def coerce(cls, value: Union[Collection, str]) -> Collection:
        if isinstance(value, cls):
            return value
        return cls(value)


class Role(str, Enum):
    USER = "user"
    MOD = "mod"
    HEADADMIN = "headadmin"


class LevelStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"


class SubmissionType(str, Enum):
    LEVEL = "level"
    COMPLETION = "completion"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


MODERATOR_ROLES = (Role.MOD.value, Role.HEADADMIN.value)

# Stored in ``banned_until`` for bans with no end date
PERMANENT_BAN = "permanent"

DAY_MS = 24 * 60 * 60 * 1000

ALL_TAGS = (
    "Cube Carried", "Ship Carried", "Wave Carried", "Ufo Carried",
    "Ball Carried", "Spider Carried", "Swing Carried",
    "Medium Length", "Long Length", "XL Length", "XXL Length (3+ Minutes)",
    "Slow Paced", "Fast Paced", "Memory Level", "Visibility Level",
)

BAN_FIELDS = ("banned_until", "ban_reason", "banned_by", "banned_at")


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def uid(prefix: str = "") -> str:
    """Short random identifier, optionally prefixed (``user_``, ``level_``...)."""
    return f"{prefix}{uuid.uuid4().hex[:12]}"


@dataclass
class User:
    username: str
    password: str
    nationality: str
    role: str = Role.USER.value
    points: int = 0
    created_at: int = field(default_factory=now_ms)
    profile_pic: str = ""
    show_country: bool = True
    bio: str = ""
    completed_records: List[Dict[str, Any]] = field(default_factory=list)
    equipped_title: str = "fresh"
    id: str = field(default_factory=lambda: uid("user_"))

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Level:
    name: str
    placement: int
    creators: List[str] = field(default_factory=list)
    level_id: str = ""
    youtube: str = ""
    thumbnail: str = ""
    tags: List[str] = field(default_factory=list)
    status: str = LevelStatus.PUBLISHED.value
    submitter: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[int] = None
    id: str = field(default_factory=lambda: uid("level_"))

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Submission:
    type: str
    submitter: str
    youtube: str
    raw: str
    # level payload
    name: Optional[str] = None
    creators: List[str] = field(default_factory=list)
    level_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    # completion payload
    level_ref: Optional[str] = None
    level_name: Optional[str] = None
    percent: Optional[int] = None
    status: str = SubmissionStatus.PENDING.value
    created_at: int = field(default_factory=now_ms)
    id: str = field(default_factory=lambda: uid("sub_"))

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        # Only keep the payload that belongs to this submission type
        if self.type == SubmissionType.LEVEL.value:
            for key in ("level_ref", "level_name", "percent"):
                record.pop(key)
        else:
            for key in ("name", "creators", "level_id", "tags"):
                record.pop(key)
        return record


@dataclass
class AuditEntry:
    action: str
    actor: Optional[str] = None
    target: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: int = field(default_factory=now_ms)
    id: str = field(default_factory=lambda: uid("audit_"))

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


def youtube_id(url: Optional[str]) -> Optional[str]:
    """Extract the video id from the common YouTube URL shapes."""
    if not url:
        return None
    from urllib.parse import urlparse, parse_qs

    parsed = urlparse(url.strip())
    host = (parsed.hostname or "").lower()
    if host.endswith("youtu.be"):
        return parsed.path.lstrip("/").split("/")[0] or None
    if "youtube" in host:
        if parsed.path == "/watch":
            return (parse_qs(parsed.query).get("v") or [None])[0]
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) >= 2 and parts[0] in ("embed", "shorts", "v", "live"):
            return parts[1]
    return None


def youtube_thumbnail(url: Optional[str]) -> str:
    video = youtube_id(url)
    return f"https://i.ytimg.com/vi/{video}/hqdefault.jpg" if video else ""
