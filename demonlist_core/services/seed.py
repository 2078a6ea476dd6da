# =============================================================================
# demonlist_core/services/seed.py
# First-run seed data
# =============================================================================

from __future__ import annotations
import logging
from typing import Callable

from demonlist_core.models import Level, Role, User, now_ms, youtube_thumbnail

logger = logging.getLogger(__name__)

HEAD_ADMIN_USERNAME = "zmmieh."
HEAD_ADMIN_PASSWORD = "123456"

SAMPLE_LEVELS = (
    ("Bloodbath", "Riot", "https://www.youtube.com/watch?v=JecDJ6b81JM"),
    ("Sonic Wave", "Cyclic", "https://www.youtube.com/watch?v=VKLsX0u7b8k"),
)


def initialize_database(data, clock: Callable[[], int] = now_ms) -> bool:
    """
    Seed an empty database with the head admin and two sample levels.

    Nothing happens when any user already exists. Sample levels are only
    added when the levels collection is empty too.

    Returns:
        True if seed data was written
    """
    users = data.get_users()
    if users:
        logger.info(f"Existing data found: {len(users)} users, {len(data.get_levels())} levels")
        return False

    logger.info("No users found, seeding initial data...")
    ts = clock()

    head_admin = User(
        username=HEAD_ADMIN_USERNAME,
        password=HEAD_ADMIN_PASSWORD,
        nationality="Hungary",
        role=Role.HEADADMIN.value,
        created_at=ts,
        bio="Head Administrator",
    ).to_record()
    data.save_users([head_admin])

    if not data.get_levels():
        levels = [
            Level(
                name=name,
                placement=idx + 1,
                creators=[creator],
                youtube=url,
                thumbnail=youtube_thumbnail(url),
                approved_by=HEAD_ADMIN_USERNAME,
                approved_at=ts,
            ).to_record()
            for idx, (name, creator, url) in enumerate(SAMPLE_LEVELS)
        ]
        data.save_levels(levels)

    data.add_audit(
        "system_init",
        actor=HEAD_ADMIN_USERNAME,
        target="init",
        details={"message": "Database initialized with seed data"},
        created_at=ts,
    )
    logger.info("Database seeded successfully")
    return True
