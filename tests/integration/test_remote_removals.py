# =============================================================================
# tests/integration/test_remote_removals.py
# Integration Tests: removals survive a round trip through the remote tables
# =============================================================================

import pytest

from demonlist_core.models import Collection, User
from demonlist_core.offline.data_service import ListDataService
from demonlist_core.offline.sync_engine import SyncEngine
from demonlist_core.services import ModerationService, SubmissionService, initialize_database


class FakeRemote:
    """In-memory tables with PostgREST-like upsert (merge on id) and delete"""

    def __init__(self):
        self.tables = {c: {} for c in Collection}

    def fetch_all(self, collection):
        return [dict(row) for row in self.tables[collection].values()]

    def upsert(self, collection, records):
        for record in records:
            self.tables[collection][record["id"]] = dict(record)
        return records

    def delete_by_id(self, collection, record_id):
        self.tables[collection].pop(record_id, None)
        return []


def add_player(data, username, clock):
    users = data.get_users()
    user = User(username=username, password="secret1", nationality="Norway", created_at=clock())
    users.append(user.to_record())
    data.save_users(users)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def remote_data(store, remote, clock):
    engine = SyncEngine(store, remote, push_interval=3600)
    data = ListDataService(store, engine)
    initialize_database(data, clock=clock)
    engine.flush()
    yield data
    engine.stop()


class TestRemovalsReachRemote:

    def test_reject_and_remove_not_restored_by_pull(self, remote_data, remote, clock, head_admin):
        add_player(remote_data, "alice", clock)
        submissions = SubmissionService(remote_data, clock=clock)
        moderation = ModerationService(remote_data, clock=clock)
        engine = remote_data.sync_engine

        bloodbath, sonic_wave = remote_data.published_levels()
        sub = submissions.submit_completion(
            "alice", sonic_wave["id"], "https://youtu.be/sw1", "https://example.com/raw", 100
        )
        engine.flush()
        assert sub["id"] in remote.tables[Collection.SUBMISSIONS]

        moderation.reject_submission(sub["id"], head_admin)
        moderation.remove_level(bloodbath["id"], head_admin)
        engine.flush()

        assert engine.bootstrap_pull() is True
        assert moderation.pending_submissions() == []
        assert [lv["placement"] for lv in remote_data.published_levels()] == [1]
        assert remote_data.published_levels()[0]["name"] == "Sonic Wave"

    def test_withdrawn_submission_not_restored_by_pull(self, remote_data, remote, clock):
        add_player(remote_data, "alice", clock)
        submissions = SubmissionService(remote_data, clock=clock)
        level = remote_data.published_levels()[0]
        sub = submissions.submit_completion(
            "alice", level["id"], "https://youtu.be/bb1", "https://example.com/raw", 100
        )
        remote_data.sync_engine.flush()

        submissions.delete_own_submission(sub["id"], "alice")
        remote_data.sync_engine.flush()
        remote_data.sync_engine.bootstrap_pull()

        assert submissions.my_submissions("alice") == []
        assert remote.tables[Collection.SUBMISSIONS] == {}

    def test_failed_delete_keeps_local_removal(self, remote_data, remote, clock, head_admin):
        moderation = ModerationService(remote_data, clock=clock)
        bloodbath = remote_data.published_levels()[0]

        def unreachable(collection, record_id):
            raise ConnectionError("offline")
        remote.delete_by_id = unreachable

        moderation.remove_level(bloodbath["id"], head_admin)
        remote_data.sync_engine.flush()

        assert remote_data.sync_engine.state.failed_deletes == 1
        assert [lv["name"] for lv in remote_data.published_levels()] == ["Sonic Wave"]
