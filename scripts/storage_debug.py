"""
Inspect and drive the local cache / remote sync from the command line.

Commands:
    dump [collection]   Print local collections as tables
    ping                Check that the remote REST API answers
    force-sync          Re-run the bootstrap pull from the remote
    push                Push every local collection to the remote now
    reset               Delete all local data (asks for --yes)
    leaderboard         Print the player leaderboard
    clear-bans          Lift every ban whose end time has passed
    reject ID           Reject a pending submission (--actor required)
    remove-level ID     Remove a level and renumber the list (--actor required)

Usage:
    python scripts/storage_debug.py dump levels
    python scripts/storage_debug.py --db local_data/demonlist.db push
    python scripts/storage_debug.py reject sub_1a2b3c --actor zmmieh.

Requirements:
    - Supabase credentials in secrets.toml or SUPABASE_URL / SUPABASE_KEY
      (required for ping, force-sync and push; moderation commands fall
      back to the local cache without them)
"""

import sys
import logging
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from demonlist_core.data import SupabaseRestClient, load_supabase_config
from demonlist_core.errors import error_boundary, handle_error, ConfigurationError
from demonlist_core.logging import setup_logging
from demonlist_core.models import Collection
from demonlist_core.offline import LocalCacheStore, SyncEngine, build_runtime
from demonlist_core.services import ModerationService, leaderboard_frame

MODERATION_COMMANDS = {
    "clear-bans": "Lift every expired ban",
    "reject": "Reject a pending submission",
    "remove-level": "Remove a level and renumber the list",
}


# =============================================================================
# COMMANDS
# =============================================================================

def dump(store, collection=None):
    collections = [Collection.coerce(collection)] if collection else list(Collection)
    for c in collections:
        df = store.to_dataframe(c)
        print(f"\n{'='*60}")
        print(f"{c.value} ({len(df)} records, key {store.key_for(c)})")
        print(f"{'='*60}")
        print(df.to_string(max_colwidth=40) if not df.empty else "  (empty)")
    return True


@error_boundary(default_return=False, error_message="Ping failed", level=logging.ERROR)
def ping(client):
    status = client.ping()
    print(f"[{status['status']}] {status['message']}")
    return status["status"] == "success"


@error_boundary(default_return=False, error_message="Force sync failed", level=logging.ERROR)
def force_sync(engine):
    ok = engine.bootstrap_pull()
    for name, result in engine.state.last_pull_results.items():
        print(f"  {'OK  ' if result else 'FAIL'} {name}")
    return ok


@error_boundary(default_return=False, error_message="Push failed", level=logging.ERROR)
def push(engine):
    results = engine.push_all()
    for name, result in results.items():
        print(f"  {'OK  ' if result else 'FAIL'} {name}")
    return all(results.values())


def reset(store, confirmed=False):
    if not confirmed:
        print("Refusing to delete local data without --yes")
        return False
    ok = store.clear()
    print("Local data cleared" if ok else "Failed to clear local data")
    return ok


def leaderboard(store, limit=None):
    df = leaderboard_frame(store.read(Collection.USERS))
    if limit:
        df = df.head(limit)
    print(df.to_string(index=False) if not df.empty else "  (no players)")
    return True


def moderate(runtime, command, target=None, actor=None):
    """Run one moderation action; domain errors are reported, not raised."""
    moderation = ModerationService(runtime.data, clock=runtime.clock)
    if command == "clear-bans":
        result = moderation.run("Clearing expired bans", moderation.clear_expired_bans)
    elif command == "reject":
        result = moderation.run(f"Rejecting submission {target}", moderation.reject_submission, target, actor)
    else:
        result = moderation.run(f"Removing level {target}", moderation.remove_level, target, actor)

    if not result:
        print(f"[{result.error_code}] {result.error}")
        return False

    if command == "clear-bans":
        print(f"Cleared {len(result.data)} expired ban(s): {', '.join(result.data) or '-'}")
    elif command == "reject":
        print(f"Rejected {result.data['type']} submission {target} from {result.data.get('submitter')}")
    else:
        print(f"Removed level '{result.data.get('name')}'")
    return True


def _build_client(secrets_path):
    try:
        return SupabaseRestClient(load_supabase_config(secrets_path))
    except ConfigurationError as e:
        print(handle_error(e))
        return None


# =============================================================================
# MAIN
# =============================================================================

def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Demon list storage debugging tool")
    parser.add_argument("--db", type=Path, default=None, help="SQLite cache file")
    parser.add_argument("--secrets", type=Path, default=None, help="Path to secrets.toml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging (default: DEMONLIST_LOG_LEVEL or INFO)")

    sub = parser.add_subparsers(dest="command", required=True)
    dump_p = sub.add_parser("dump", help="Print local collections")
    dump_p.add_argument("collection", nargs="?", choices=[c.value for c in Collection])
    sub.add_parser("ping", help="Check the remote API")
    sub.add_parser("force-sync", help="Pull every collection from the remote")
    sub.add_parser("push", help="Push every collection to the remote")
    reset_p = sub.add_parser("reset", help="Delete all local data")
    reset_p.add_argument("--yes", action="store_true", help="Confirm deletion")
    board_p = sub.add_parser("leaderboard", help="Print the player leaderboard")
    board_p.add_argument("--limit", type=int, default=None, help="Show only the top N")
    for name, help_text in MODERATION_COMMANDS.items():
        mod_p = sub.add_parser(name, help=help_text)
        if name != "clear-bans":
            mod_p.add_argument("target", help="Submission or level id")
            mod_p.add_argument("--actor", required=True, help="Moderator username")
        mod_p.add_argument("--local", action="store_true", help="Skip the remote, local cache only")

    args = parser.parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else None)

    if args.command in MODERATION_COMMANDS:
        client = None if args.local else _build_client(args.secrets)
        runtime = build_runtime(db_path=args.db, client=client, remote=False)
        try:
            ok = moderate(runtime, args.command, getattr(args, "target", None), getattr(args, "actor", None))
        finally:
            runtime.shutdown()
        return 0 if ok else 1

    store = LocalCacheStore(db_path=args.db)
    try:
        if args.command == "dump":
            ok = dump(store, args.collection)
        elif args.command == "reset":
            ok = reset(store, args.yes)
        elif args.command == "leaderboard":
            ok = leaderboard(store, args.limit)
        else:
            client = _build_client(args.secrets)
            if client is None:
                return 1
            try:
                if args.command == "ping":
                    ok = ping(client)
                elif args.command == "force-sync":
                    ok = force_sync(SyncEngine(store, client))
                else:
                    ok = push(SyncEngine(store, client))
            finally:
                client.close()
    finally:
        store.close()

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
