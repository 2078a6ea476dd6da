# =============================================================================
# demonlist_core/services/ranking.py
# Leaderboard ranking, points and title eligibility
# =============================================================================
"""
Pure functions over already-loaded user/level lists.

Rank is always derived from the current points; it is never stored on the
user record, so it cannot go stale when points change.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

Record = Dict[str, Any]

MAX_POINTS_PER_LEVEL = 100


@dataclass(frozen=True)
class Title:
    id: str
    label: str
    req_text: str
    min_points: Optional[int] = None
    exact_rank: Optional[int] = None


TITLES = (
    Title("fresh", "Fresh", "Free for everyone", min_points=0),
    Title("maybe_him", "Maybe him", "100 points", min_points=100),
    Title("let_me_cook", "Let me Cook...", "300 points", min_points=300),
    Title("just_better", "I'm just better", "500 points", min_points=500),
    Title("god_like", "God-Like", "1000 points", min_points=1000),
    Title("fart", "Fart", "3000 points", min_points=3000),
    Title("top3", "Top 3", "Only user ranked #3", exact_rank=3),
    Title("top2", "Top 2", "Only user ranked #2", exact_rank=2),
    Title("top1", "Yes I'm him, the Top 1", "Only user ranked #1", exact_rank=1),
)

TITLES_BY_ID = {t.id: t for t in TITLES}


def leaderboard(users: List[Record]) -> List[Record]:
    """Users by points, highest first. Ties keep insertion order."""
    return sorted(users, key=lambda u: -(u.get("points") or 0))


def user_rank(users: List[Record], username: str) -> Optional[int]:
    """1-based leaderboard position, or None for unknown users."""
    for idx, user in enumerate(leaderboard(users)):
        if user.get("username") == username:
            return idx + 1
    return None


def points_for_placement(placement: Optional[int]) -> int:
    """Points for completing the level at a placement: clamp(101 - p, 1, 100)."""
    if not placement:
        return 1
    return max(1, min(MAX_POINTS_PER_LEVEL, 101 - placement))


def can_equip_title(user: Optional[Record], title_id: str, users: List[Record]) -> bool:
    """Whether a user currently qualifies for a title."""
    if not user:
        return False
    title = TITLES_BY_ID.get(title_id)
    if title is None:
        return False

    if title.exact_rank is not None:
        return user_rank(users, user.get("username")) == title.exact_rank
    return (user.get("points") or 0) >= (title.min_points or 0)


def eligible_titles(user: Optional[Record], users: List[Record]) -> List[Title]:
    return [t for t in TITLES if can_equip_title(user, t.id, users)]


def leaderboard_frame(users: List[Record]) -> pd.DataFrame:
    """Leaderboard as a DataFrame with rank, username, nationality, points, completions."""
    rows = [
        {
            "rank": idx + 1,
            "username": u.get("username"),
            "nationality": u.get("nationality"),
            "points": u.get("points") or 0,
            "completions": len(u.get("completed_records") or []),
        }
        for idx, u in enumerate(leaderboard(users))
    ]
    return pd.DataFrame(rows, columns=["rank", "username", "nationality", "points", "completions"])
