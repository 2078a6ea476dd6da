# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import logging

import pytest
from unittest.mock import MagicMock

from demonlist_core.models import DAY_MS, Level, Role, User


@pytest.fixture(autouse=True)
def restore_root_logging():
    """setup_logging() replaces root handlers; put them back after each test"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


# Fixed starting point for the fake clock (2023-11-14T22:13:20Z)
START_MS = 1_700_000_000_000


class FakeClock:
    """Deterministic epoch-ms clock; call it like ``now_ms``."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now

    def advance_days(self, days: float) -> int:
        return self.advance(int(days * DAY_MS))


# =============================================================================
# STORAGE FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    """Local cache backed by a throwaway SQLite file"""
    from demonlist_core.offline.local_cache import LocalCacheStore

    cache = LocalCacheStore(db_path=tmp_path / "demonlist_test.db")
    yield cache
    cache.close()


@pytest.fixture
def mock_client():
    """Remote client double: empty tables, every upsert accepted"""
    client = MagicMock()
    client.fetch_all.return_value = []
    client.upsert.side_effect = lambda table, records: records
    return client


@pytest.fixture
def sync_engine(store, mock_client):
    """Sync engine with no background threads (flush() runs pushes inline)"""
    from demonlist_core.offline.sync_engine import SyncEngine

    engine = SyncEngine(store, mock_client, push_interval=3600)
    yield engine
    engine.stop()


@pytest.fixture
def data(store, sync_engine):
    from demonlist_core.offline.data_service import ListDataService

    return ListDataService(store, sync_engine)


@pytest.fixture
def sessions(data, clock):
    from demonlist_core.state import SessionManager

    return SessionManager(data, clock=clock)


# =============================================================================
# DOMAIN FIXTURES
# =============================================================================

@pytest.fixture
def seeded_data(data, clock):
    """Fresh install: head admin plus the two sample levels"""
    from demonlist_core.services.seed import initialize_database

    initialize_database(data, clock=clock)
    return data


@pytest.fixture
def head_admin():
    return "zmmieh."


@pytest.fixture
def add_user(data, clock):
    """Factory that stores a user and returns its record"""
    def _add(username, role=Role.USER.value, points=0, password="secret1", nationality="Norway"):
        record = User(
            username=username,
            password=password,
            nationality=nationality,
            role=role,
            points=points,
            created_at=clock(),
        ).to_record()
        users = data.get_users()
        users.append(record)
        data.save_users(users)
        return record

    return _add


@pytest.fixture
def add_level(data):
    """Factory that stores a published level at a placement"""
    def _add(name, placement, youtube=""):
        record = Level(name=name, placement=placement, youtube=youtube).to_record()
        levels = data.get_levels()
        levels.append(record)
        data.save_levels(levels)
        return record

    return _add


@pytest.fixture
def moderation(seeded_data, clock):
    from demonlist_core.services import ModerationService

    return ModerationService(seeded_data, clock=clock)


@pytest.fixture
def submissions(seeded_data, clock):
    from demonlist_core.services import SubmissionService

    return SubmissionService(seeded_data, clock=clock)


@pytest.fixture
def accounts(seeded_data, sessions, clock):
    from demonlist_core.services import AccountService

    return AccountService(seeded_data, sessions, clock=clock)
