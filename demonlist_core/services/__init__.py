"""
Domain services for the demon list.

Each service works on collections loaded through ListDataService and
raises DomainValidationError subclasses for anything the user did wrong.
"""

from demonlist_core.services.base_service import BaseService, ServiceResult
from demonlist_core.services.account_service import AccountService
from demonlist_core.services.moderation_service import (
    ModerationService,
    is_ban_active,
    ban_has_expired,
)
from demonlist_core.services.submission_service import SubmissionService
from demonlist_core.services.ranking import (
    TITLES,
    Title,
    leaderboard,
    leaderboard_frame,
    user_rank,
    points_for_placement,
    can_equip_title,
    eligible_titles,
)
from demonlist_core.services.seed import initialize_database

__all__ = [
    "BaseService",
    "ServiceResult",
    "AccountService",
    "ModerationService",
    "SubmissionService",
    "is_ban_active",
    "ban_has_expired",
    "TITLES",
    "Title",
    "leaderboard",
    "leaderboard_frame",
    "user_rank",
    "points_for_placement",
    "can_equip_title",
    "eligible_titles",
    "initialize_database",
]
