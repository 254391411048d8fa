#!/usr/bin/env python3
"""
ProgressVault CLI - keep profile progress from going backwards.

Watches the profile directory, reconciles single files on demand and shows
what the vault currently holds.
"""

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Dict, Any, Optional, Sequence

from .config import VaultConfig
from .infra.discovery import ProfileDirectory
from .infra.profile_watcher import ProfileWatcher, reconcile_file
from .observers import enable_logging
from .records.stats_parser import StatsParser
from .utils.atomic_io import read_text_exact
from .vault.reconcile import ReconcileEngine, ReconcileOutcome
from .vault.snapshot_store import SnapshotStore, profile_key

OUTCOME_MESSAGES = {
    ReconcileOutcome.CREATED: "📝 Snapshot created",
    ReconcileOutcome.RESTORED: "♻️  Profile restored from snapshot (anti-regression)",
    ReconcileOutcome.UPDATED: "⬆️  Snapshot updated from profile (progress persisted)",
    ReconcileOutcome.NOOP: "✓ No reconcile change necessary",
}


def load_config(args) -> VaultConfig:
    """Build the config from env/.env plus whichever flags were given."""
    overrides: Dict[str, Any] = {}
    for name in ("profiles_dir", "game_root", "vault_dir"):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    return VaultConfig(**overrides)


def build_engine(config: VaultConfig, observer: logging.Logger) -> ReconcileEngine:
    store = SnapshotStore(config.get_vault_dir(), observer=observer)
    store.ensure_ready()
    return ReconcileEngine(store, restore_attributes=config.restore_attributes, observer=observer)


def _observer(args, config: VaultConfig) -> logging.Logger:
    level = logging.DEBUG if getattr(args, "verbose", False) else getattr(logging, config.log_level, logging.INFO)
    return enable_logging(level)


def cmd_watch(args):
    """Watch the profile directory until interrupted."""
    config = load_config(args)
    log = _observer(args, config)
    engine = build_engine(config, log)

    directory = ProfileDirectory(config.get_profiles_dir(), pattern=config.profile_glob, observer=log)
    watcher = ProfileWatcher(
        directory,
        engine,
        parser=StatsParser(observer=log),
        debounce_s=config.debounce_ms / 1000.0,
        poll_interval_s=config.poll_interval_s,
        bootstrap_delay_s=config.bootstrap_delay_s,
        max_read_retries=config.max_read_retries,
        retry_delay_s=config.retry_delay_ms / 1000.0,
        observer=log,
    )

    print(f"👁️  Watching profiles in: {directory.root}")
    print(f"🗄️  Vault: {engine.store.vault_dir}")
    print(f"⏱️  Debounce: {config.debounce_ms}ms, poll every {config.poll_interval_s}s")

    stop = threading.Event()
    watcher.start()
    try:
        print("Press Ctrl+C to stop watching...")
        watcher.run_until(stop)
    except KeyboardInterrupt:
        print("\nStopping watcher...")
    finally:
        stop.set()
        watcher.stop()


def cmd_reconcile(args):
    """Run one reconcile pass for a profile file."""
    config = load_config(args)
    log = _observer(args, config)
    engine = build_engine(config, log)

    path = Path(args.path)
    if not path.is_file():
        raise FileNotFoundError(f"Profile not found: {path}")

    result = reconcile_file(path, StatsParser(observer=log), engine)
    print(f"{OUTCOME_MESSAGES[result.outcome]} [{result.key}]")
    if result.reason and result.outcome is ReconcileOutcome.NOOP:
        print(f"  reason: {result.reason}")
    if result.snapshot is not None:
        print(f"  snapshot: {result.snapshot.describe()}")


def cmd_show(args):
    """Show what the parser sees in a profile and what the vault holds for it."""
    config = load_config(args)
    path = Path(args.path)
    stats = StatsParser().parse(read_text_exact(path))
    key = profile_key(path)

    print(f"Profile: {path}")
    print(f"Key:     {key}")
    if stats is None:
        print("  (no level or experience field found)")
    else:
        for label, match, known, value in (
            ("level", stats.level_match, stats.level_known, stats.level),
            ("exp", stats.experience_match, stats.experience_known, stats.experience),
        ):
            if match is None:
                print(f"  {label:<6} not found")
            else:
                shown = value if known else "unknown"
                print(f"  {label:<6} {shown:<12} via {match.alias!r} at {match.start}-{match.end}")
        for name, value in sorted(stats.attributes.items()):
            print(f"  {name:<6} {value}")
        if stats.nick or stats.class_id:
            print(f"  nick={stats.nick!r} class={stats.class_id!r}")

    snapshot = SnapshotStore(config.get_vault_dir()).load(key)
    if snapshot is None:
        print("Snapshot: none")
    else:
        print(f"Snapshot: {snapshot.describe()}")


def cmd_snapshots(args):
    """List stored snapshots."""
    config = load_config(args)
    store = SnapshotStore(config.get_vault_dir())
    keys = store.keys()
    if not keys:
        print("No snapshots found.")
        return

    print(f"Snapshots ({len(keys)}) in {store.vault_dir}:")
    print(f"{'Key':<36} {'Level':<8} {'Exp':<14} {'Nick':<16} {'Class'}")
    print("-" * 90)
    for key in keys:
        snap = store.load(key)
        if snap is None:
            continue
        print(f"{key:<36} {snap.level:<8} {snap.experience:<14} {snap.nick:<16} {snap.class_id}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="progressvault",
        description="ProgressVault: keep local profile progress from regressing",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--profiles-dir", type=Path, help="Profile directory (overrides auto-detection)")
    parser.add_argument("--game-root", type=Path, help="Game root used to find the profile directory")
    parser.add_argument("--vault-dir", type=Path, help="Snapshot directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    watch_parser = subparsers.add_parser("watch", help="Watch profiles and reconcile on change")
    watch_parser.set_defaults(func=cmd_watch)

    reconcile_parser = subparsers.add_parser("reconcile", help="Reconcile one profile file now")
    reconcile_parser.add_argument("path", help="Profile file")
    reconcile_parser.set_defaults(func=cmd_reconcile)

    show_parser = subparsers.add_parser("show", help="Show parsed values and snapshot for a profile")
    show_parser.add_argument("path", help="Profile file")
    show_parser.set_defaults(func=cmd_show)

    snapshots_parser = subparsers.add_parser("snapshots", help="List stored snapshots")
    snapshots_parser.set_defaults(func=cmd_snapshots)

    return parser


def main(argv: Optional[Sequence[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
