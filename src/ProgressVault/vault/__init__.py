from .snapshot_store import Snapshot, SnapshotStore, profile_key
from .reconcile import ReconcileEngine, ReconcileOutcome, ReconcileResult

__all__ = [
    "Snapshot",
    "SnapshotStore",
    "profile_key",
    "ReconcileEngine",
    "ReconcileOutcome",
    "ReconcileResult",
]
