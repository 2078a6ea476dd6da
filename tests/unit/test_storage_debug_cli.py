# =============================================================================
# tests/unit/test_storage_debug_cli.py
# Unit Tests for scripts/storage_debug.py
# =============================================================================

import importlib.util
from pathlib import Path

import pytest
from unittest.mock import MagicMock

from demonlist_core.models import Collection, Role, Submission, User
from demonlist_core.offline.local_cache import LocalCacheStore

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "storage_debug.py"


@pytest.fixture
def cli():
    spec = importlib.util.spec_from_file_location("storage_debug", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "cli.db"
    store = LocalCacheStore(db_path=path)
    store.write(Collection.LEVELS, [{"id": "l1", "name": "Bloodbath", "placement": 1}])
    store.close()
    return path


class TestCommands:

    def test_dump_prints_collection(self, cli, db_path, capsys):
        assert cli.main(["--db", str(db_path), "dump", "levels"]) == 0

        out = capsys.readouterr().out
        assert "levels (1 records" in out
        assert "Bloodbath" in out

    def test_reset_requires_confirmation(self, cli, db_path):
        assert cli.main(["--db", str(db_path), "reset"]) == 1

        store = LocalCacheStore(db_path=db_path)
        try:
            assert store.read(Collection.LEVELS) != []
        finally:
            store.close()

    def test_reset_clears(self, cli, db_path):
        assert cli.main(["--db", str(db_path), "reset", "--yes"]) == 0

        store = LocalCacheStore(db_path=db_path)
        try:
            assert store.read(Collection.LEVELS) == []
        finally:
            store.close()

    def test_push_uses_remote_client(self, cli, db_path, monkeypatch):
        client = MagicMock()
        client.upsert.side_effect = lambda table, records: records
        monkeypatch.setattr(cli, "_build_client", lambda secrets: client)

        assert cli.main(["--db", str(db_path), "push"]) == 0
        client.upsert.assert_called_once_with(
            Collection.LEVELS, [{"id": "l1", "name": "Bloodbath", "placement": 1}]
        )
        client.close.assert_called_once()

    def test_ping_failure_exit_code(self, cli, db_path, monkeypatch):
        client = MagicMock()
        client.ping.return_value = {"status": "error", "message": "Connection failed: offline"}
        monkeypatch.setattr(cli, "_build_client", lambda secrets: client)

        assert cli.main(["--db", str(db_path), "ping"]) == 1

    def test_missing_credentials(self, cli, db_path, monkeypatch):
        monkeypatch.setattr(cli, "_build_client", lambda secrets: None)

        assert cli.main(["--db", str(db_path), "force-sync"]) == 1


@pytest.fixture
def moderation_db(tmp_path):
    """Cache with a head admin, a player, one level and one pending submission"""
    path = tmp_path / "mod.db"
    store = LocalCacheStore(db_path=path)
    store.write(Collection.USERS, [
        User(username="zmmieh.", password="secret1", nationality="Norway",
             role=Role.HEADADMIN.value, id="user_admin").to_record(),
        User(username="alice", password="secret1", nationality="Norway",
             points=150, id="user_alice").to_record(),
    ])
    store.write(Collection.LEVELS, [
        {"id": "l1", "name": "Bloodbath", "placement": 1, "status": "published"},
        {"id": "l2", "name": "Sonic Wave", "placement": 2, "status": "published"},
    ])
    store.write(Collection.SUBMISSIONS, [
        Submission(type="level", submitter="alice", youtube="https://youtu.be/x",
                   raw="https://example.com/raw", name="Tartarus", id="sub_1").to_record(),
    ])
    store.close()
    return path


def read(path, collection):
    store = LocalCacheStore(db_path=path)
    try:
        return store.read(collection)
    finally:
        store.close()


class TestModerationCommands:

    def test_leaderboard(self, cli, moderation_db, capsys):
        assert cli.main(["--db", str(moderation_db), "leaderboard", "--limit", "1"]) == 0

        out = capsys.readouterr().out
        assert "alice" in out
        assert "zmmieh." not in out

    def test_reject_deletes_remotely(self, cli, moderation_db, monkeypatch):
        client = MagicMock()
        client.upsert.side_effect = lambda table, records: records
        monkeypatch.setattr(cli, "_build_client", lambda secrets: client)

        assert cli.main(["--db", str(moderation_db), "reject", "sub_1", "--actor", "zmmieh."]) == 0

        assert read(moderation_db, Collection.SUBMISSIONS) == []
        client.delete_by_id.assert_called_once_with(Collection.SUBMISSIONS, "sub_1")
        client.close.assert_called_once()

    def test_unknown_submission_reported(self, cli, moderation_db, capsys):
        code = cli.main(["--db", str(moderation_db), "reject", "sub_nope", "--actor", "zmmieh.", "--local"])

        assert code == 1
        assert "[DOMAIN_005] Submission not found" in capsys.readouterr().out

    def test_non_moderator_refused(self, cli, moderation_db, capsys):
        code = cli.main(["--db", str(moderation_db), "remove-level", "l1", "--actor", "alice", "--local"])

        assert code == 1
        assert "[DOMAIN_007] Mods only" in capsys.readouterr().out
        assert len(read(moderation_db, Collection.LEVELS)) == 2

    def test_remove_level_renumbers(self, cli, moderation_db):
        code = cli.main(["--db", str(moderation_db), "remove-level", "l1", "--actor", "zmmieh.", "--local"])

        assert code == 0
        assert [(lv["name"], lv["placement"]) for lv in read(moderation_db, Collection.LEVELS)] == [
            ("Sonic Wave", 1),
        ]

    def test_clear_bans_without_credentials(self, cli, moderation_db, monkeypatch, capsys):
        monkeypatch.setattr(cli, "_build_client", lambda secrets: None)

        assert cli.main(["--db", str(moderation_db), "clear-bans"]) == 0
        assert "Cleared 0 expired ban(s)" in capsys.readouterr().out
