# =============================================================================
# tests/integration/test_storage_bootstrap.py
# Integration Tests: startup sequence, seeding and list maintenance
# =============================================================================

import pytest
from unittest.mock import MagicMock

from demonlist_core.errors import RemoteTransportError
from demonlist_core.models import Collection, Role
from demonlist_core.offline import build_runtime, initialize_storage
from demonlist_core.services import ModerationService, SubmissionService, initialize_database


@pytest.fixture
def runtime(tmp_path, mock_client, clock):
    rt = build_runtime(db_path=tmp_path / "runtime.db", client=mock_client, clock=clock)
    yield rt
    rt.shutdown()


class TestSeed:

    def test_fresh_install_seed(self, data, clock):
        assert initialize_database(data, clock=clock) is True

        users = data.get_users()
        assert len(users) == 1
        assert users[0]["username"] == "zmmieh."
        assert users[0]["role"] == Role.HEADADMIN.value
        assert [(lv["name"], lv["placement"]) for lv in data.published_levels()] == [
            ("Bloodbath", 1),
            ("Sonic Wave", 2),
        ]
        assert data.get_audit()[0]["action"] == "system_init"

    def test_seed_skipped_when_users_exist(self, data, add_user, clock):
        add_user("alice")

        assert initialize_database(data, clock=clock) is False
        assert data.get_levels() == []

    def test_existing_levels_kept(self, data, add_level, clock):
        add_level("Tartarus", 1)

        initialize_database(data, clock=clock)

        assert [lv["name"] for lv in data.published_levels()] == ["Tartarus"]


class TestSeedScenario:
    """Seed, approve a new level, then remove #1"""

    def test_placements_stay_dense(self, seeded_data, add_user, clock, head_admin):
        add_user("alice")
        submissions = SubmissionService(seeded_data, clock=clock)
        moderation = ModerationService(seeded_data, clock=clock)

        sub = submissions.submit_level(
            "alice", "Tartarus", "Dolphy", "59075347",
            "https://youtu.be/abc", "https://example.com/raw", ["Memory Level"],
        )
        moderation.approve_submission(sub["id"], head_admin)
        assert [lv["placement"] for lv in seeded_data.published_levels()] == [1, 2, 3]

        bloodbath = seeded_data.published_levels()[0]
        moderation.remove_level(bloodbath["id"], head_admin)

        levels = seeded_data.published_levels()
        assert [(lv["name"], lv["placement"]) for lv in levels] == [("Sonic Wave", 1), ("Tartarus", 2)]


class TestInitializeStorage:

    def test_remote_data_then_no_seed(self, runtime, mock_client):
        mock_client.fetch_all.side_effect = lambda c: (
            [{"id": "u1", "username": "remote_admin", "role": "headadmin", "points": 0}]
            if c is Collection.USERS else []
        )
        ready = MagicMock()
        runtime.on_ready(ready)

        initialize_storage(runtime, start_sync=False)

        assert runtime.remote_synced is True
        assert runtime.ready is True
        ready.assert_called_once_with(runtime)
        assert [u["username"] for u in runtime.data.get_users()] == ["remote_admin"]
        assert runtime.data.get_levels() == []

    def test_unreachable_remote_falls_back_to_seed(self, runtime, mock_client):
        mock_client.fetch_all.side_effect = RemoteTransportError("offline")

        initialize_storage(runtime, start_sync=False)

        assert runtime.remote_synced is False
        assert runtime.ready is True
        assert runtime.data.get_users()[0]["username"] == "zmmieh."

    def test_seed_is_pushed_once_sync_starts(self, runtime, mock_client):
        initialize_storage(runtime, start_sync=True)
        assert runtime.sync_engine.is_running

        runtime.sync_engine.flush()

        pushed = {call.args[0] for call in mock_client.upsert.call_args_list}
        assert {Collection.USERS, Collection.LEVELS, Collection.AUDIT_LOG} <= pushed

    def test_on_ready_after_startup_runs_immediately(self, runtime):
        initialize_storage(runtime, start_sync=False)
        ready = MagicMock()

        runtime.on_ready(ready)

        ready.assert_called_once_with(runtime)

    def test_local_only_runtime(self, tmp_path, clock):
        rt = build_runtime(db_path=tmp_path / "local.db", remote=False, clock=clock)
        try:
            initialize_storage(rt, start_sync=False)

            assert rt.client is None
            assert rt.remote_synced is False
            assert len(rt.data.get_users()) == 1
        finally:
            rt.shutdown()

    def test_missing_config_disables_remote(self, tmp_path, monkeypatch, clock):
        from demonlist_core.errors import ConfigurationError

        def no_config(*args, **kwargs):
            raise ConfigurationError("missing")
        monkeypatch.setattr("demonlist_core.offline.bootstrap.load_supabase_config", no_config)

        rt = build_runtime(db_path=tmp_path / "noconf.db", clock=clock)
        try:
            assert rt.client is None
            assert rt.sync_engine.remote_enabled is False
        finally:
            rt.shutdown()


class TestShutdown:

    def test_shutdown_flushes_queued_work(self, tmp_path, mock_client, clock):
        rt = build_runtime(db_path=tmp_path / "flush.db", client=mock_client, clock=clock)
        rt.data.save_users([{"id": "u1", "username": "alice"}])
        rt.data.delete_remote(Collection.LEVELS, "level_old")

        rt.shutdown()

        mock_client.upsert.assert_called_once_with(Collection.USERS, [{"id": "u1", "username": "alice"}])
        mock_client.delete_by_id.assert_called_once_with(Collection.LEVELS, "level_old")
        mock_client.close.assert_called_once()

    def test_client_close_failure_does_not_stop_shutdown(self, tmp_path, mock_client, clock, caplog):
        mock_client.close.side_effect = RemoteTransportError("socket already closed")
        rt = build_runtime(db_path=tmp_path / "close.db", client=mock_client, clock=clock)
        rt.store.write(Collection.USERS, [{"id": "u1"}])

        rt.shutdown()

        assert rt.store._local.connection is None
        assert "Failed to close remote client" in caplog.text
