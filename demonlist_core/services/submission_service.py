# =============================================================================
# demonlist_core/services/submission_service.py
# Level and completion submissions from players
# =============================================================================

from __future__ import annotations
import math
from typing import Any, Dict, List, Optional, Union

from demonlist_core.errors import (
    DomainValidationError,
    LevelNotFoundError,
    PermissionDeniedError,
    SubmissionNotFoundError,
    UserNotFoundError,
)
from demonlist_core.models import Collection, Submission, SubmissionStatus, SubmissionType
from demonlist_core.services.base_service import BaseService
from demonlist_core.services.moderation_service import normalize_tags

Record = Dict[str, Any]


def _required(value: Optional[str], field: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise DomainValidationError(f"{label} is required", field=field)
    return value


def clamp_percent(percent: Any) -> int:
    """Completion percentage as an int in 0..100 (missing counts as 100)."""
    if percent is None or percent == "":
        return 100
    try:
        value = float(percent)
    except (TypeError, ValueError, OverflowError):
        raise DomainValidationError("Percent must be a number", field="percent", value=percent)
    if not math.isfinite(value):
        raise DomainValidationError("Percent must be a finite number", field="percent", value=percent)
    value = round(value)
    return max(0, min(100, value))


class SubmissionService(BaseService):
    """Creates and withdraws pending submissions."""

    def _require_submitter(self, submitter: Optional[str]) -> Record:
        if not submitter:
            raise PermissionDeniedError("Login required", actor=submitter)
        user = self.get_user(submitter)
        if user is None:
            raise UserNotFoundError(submitter)
        return user

    def _store(self, submission: Submission, action: str, details: Dict[str, Any]) -> Record:
        record = submission.to_record()
        subs = self.data.get_submissions()
        subs.append(record)
        self.data.save_submissions(subs)
        self.audit(action, actor=submission.submitter, target=record["id"], details=details)
        return record

    def submit_level(
        self,
        submitter: str,
        name: str,
        creators: Union[str, List[str]],
        level_id: str,
        youtube: str,
        raw: str,
        tags: Union[str, List[str]],
    ) -> Record:
        """Queue a new level for moderator review."""
        self._require_submitter(submitter)
        name = _required(name, "name", "Level name")
        level_id = _required(level_id, "level_id", "Level ID")
        youtube = _required(youtube, "youtube", "Video link")
        raw = _required(raw, "raw", "Raw footage link")

        if isinstance(creators, str):
            creators = creators.split(",")
        creators = [c.strip() for c in creators or [] if c and c.strip()]
        if not creators:
            raise DomainValidationError("Creators are required", field="creators")

        tags = normalize_tags(tags)
        if not tags:
            raise DomainValidationError("Select at least one tag", field="tags")

        submission = Submission(
            type=SubmissionType.LEVEL.value,
            submitter=submitter,
            youtube=youtube,
            raw=raw,
            name=name,
            creators=creators,
            level_id=level_id,
            tags=tags,
            created_at=self.clock(),
        )
        return self._store(submission, "submit_level", {"name": name})

    def submit_completion(
        self,
        submitter: str,
        level_ref: str,
        youtube: str,
        raw: str,
        percent: Any = 100,
    ) -> Record:
        """Queue a completion of a published level for review."""
        self._require_submitter(submitter)
        youtube = _required(youtube, "youtube", "Video link")
        raw = _required(raw, "raw", "Raw footage link")

        level = next(
            (lv for lv in self.data.published_levels() if lv.get("id") == level_ref),
            None,
        )
        if level is None:
            raise LevelNotFoundError(level_ref)

        submission = Submission(
            type=SubmissionType.COMPLETION.value,
            submitter=submitter,
            youtube=youtube,
            raw=raw,
            level_ref=level_ref,
            level_name=level.get("name"),
            percent=clamp_percent(percent),
            created_at=self.clock(),
        )
        return self._store(
            submission,
            "submit_completion",
            {"level": level_ref, "percent": submission.percent},
        )

    def my_submissions(self, username: str) -> List[Record]:
        """A user's submissions, newest first."""
        mine = [s for s in self.data.get_submissions() if s.get("submitter") == username]
        return sorted(mine, key=lambda s: s.get("created_at") or 0, reverse=True)

    def delete_own_submission(self, submission_id: str, username: str) -> Record:
        """
        Withdraw one of the user's own pending submissions.

        Raises:
            SubmissionNotFoundError: unknown or no longer pending
            PermissionDeniedError: the submission belongs to someone else
        """
        subs = self.data.get_submissions()
        sub = next((s for s in subs if s.get("id") == submission_id), None)
        if sub is None or sub.get("status") != SubmissionStatus.PENDING.value:
            raise SubmissionNotFoundError(submission_id)
        if sub.get("submitter") != username:
            raise PermissionDeniedError("You can only delete your own submissions", actor=username)

        self.data.save_submissions([s for s in subs if s.get("id") != submission_id])
        self.data.delete_remote(Collection.SUBMISSIONS, submission_id)
        self.audit("delete_submission", actor=username, target=submission_id)
        return sub
