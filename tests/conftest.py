"""
Pytest configuration for ProgressVault tests.

This configuration provides:
- A fake profileCollections directory and vault directory per test
- Wired-up parser / store / engine instances
- A manual clock for driving the watcher without sleeping
"""

import pytest
from pathlib import Path

from ProgressVault.records.stats_parser import StatsParser
from ProgressVault.vault.reconcile import ReconcileEngine
from ProgressVault.vault.snapshot_store import SnapshotStore
from helpers.profile_ground import ProfileGround


# ============================================================================
# Path Fixtures
# ============================================================================

@pytest.fixture
def profiles_dir(tmp_path: Path) -> Path:
    """Return a fresh profile directory."""
    path = tmp_path / "ATLYSS_Data" / "profileCollections"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    """Return the (not yet created) vault directory."""
    return tmp_path / "vault"


@pytest.fixture
def ground(profiles_dir: Path) -> ProfileGround:
    return ProfileGround(profiles_dir)


# ============================================================================
# Core Component Fixtures
# ============================================================================

@pytest.fixture
def parser() -> StatsParser:
    return StatsParser()


@pytest.fixture
def store(vault_dir: Path) -> SnapshotStore:
    return SnapshotStore(vault_dir)


@pytest.fixture
def engine(store: SnapshotStore) -> ReconcileEngine:
    return ReconcileEngine(store)


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


class RecordingObserver:
    """Observer that keeps every message, per level."""

    def __init__(self):
        self.messages = []

    def debug(self, msg: str, *args) -> None:
        self.messages.append(("debug", msg))

    def info(self, msg: str, *args) -> None:
        self.messages.append(("info", msg))

    def warning(self, msg: str, *args) -> None:
        self.messages.append(("warning", msg))

    def text(self, level: str) -> str:
        return "\n".join(m for lvl, m in self.messages if lvl == level)


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()
