"""
Reconcile engine: disk record vs. snapshot, and which way to sync.

- Disk regressed below the snapshot: write the snapshot back into the record
  (anti-regression).
- Disk progressed past the snapshot: move the snapshot forward.
- First sighting of a profile: create its snapshot.
- Anything else: leave both alone.

Failures never leave this module; every call returns a ReconcileResult.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from ProgressVault.errors import PatchWriteError, SnapshotStoreError
from ProgressVault.observers import NullObserver, VaultObserver
from ProgressVault.progress import (
    UNKNOWN_EXPERIENCE,
    UNKNOWN_LEVEL,
    advance,
    compare_progress,
    experience_known,
    level_known,
)
from ProgressVault.records.patch_writer import PatchResult, PatchTarget, SafePatchWriter
from ProgressVault.records.stats_parser import ParsedStats
from ProgressVault.vault.snapshot_store import Snapshot, SnapshotStore

PROGRESS_FIELDS = ("level", "experience")


class ReconcileOutcome(Enum):
    """What a reconcile pass did."""
    CREATED = "created"
    RESTORED = "restored"
    UPDATED = "updated"
    NOOP = "noop"


@dataclass
class ReconcileResult:
    outcome: ReconcileOutcome
    key: str
    snapshot: Optional[Snapshot] = None
    patch: Optional[PatchResult] = None
    reason: str = ""
    # Set when the pass failed on I/O and should run again on unchanged content.
    io_failed: bool = False


class ReconcileEngine:
    """Decides between create / restore / update / no-op for one profile."""

    def __init__(
        self,
        store: SnapshotStore,
        writer: Optional[SafePatchWriter] = None,
        restore_attributes: bool = True,
        observer: Optional[VaultObserver] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Snapshot store (the engine is its only writer)
            writer: Patch writer for the profile record
            restore_attributes: Also write snapshot attributes back on restore
            observer: Diagnostics sink (no-op if None)
        """
        self.store = store
        self.observer = observer or NullObserver()
        self.writer = writer or SafePatchWriter(observer=self.observer)
        self.restore_attributes = restore_attributes

    def reconcile(
        self,
        key: str,
        parsed: Optional[ParsedStats],
        record_path: Union[str, Path],
    ) -> ReconcileResult:
        """
        Reconcile one parsed record against its snapshot.

        Args:
            key: Profile key of the record
            parsed: Parser output for the record text (None if unparseable)
            record_path: Record file, patched in place on restore

        Returns:
            ReconcileResult describing what happened
        """
        if parsed is None:
            return self._noop(key, None, "record has no level or experience field")

        try:
            snapshot = self.store.load(key)
        except SnapshotStoreError as e:
            self.observer.warning(f"Reconcile skipped for {key}: {e}")
            return self._noop(key, None, str(e), io_failed=True)

        if snapshot is None:
            return self._create(key, parsed)

        disk_level = parsed.level if parsed.level_known else UNKNOWN_LEVEL
        disk_exp = parsed.experience if parsed.experience_known else UNKNOWN_EXPERIENCE
        direction = compare_progress(snapshot.level, snapshot.experience, disk_level, disk_exp)

        if direction < 0:
            return self._restore(snapshot, parsed, Path(record_path))
        if direction > 0:
            return self._update(snapshot, parsed, disk_level, disk_exp)
        return self._noop(key, snapshot, "in sync")

    def _create(self, key: str, parsed: ParsedStats) -> ReconcileResult:
        if not parsed.has_known_field:
            return self._noop(key, None, "no known field to snapshot")
        snapshot = Snapshot(
            key=key,
            level=parsed.level if parsed.level_known else UNKNOWN_LEVEL,
            experience=parsed.experience if parsed.experience_known else UNKNOWN_EXPERIENCE,
            attributes=dict(parsed.attributes),
            nick=parsed.nick,
            class_id=parsed.class_id,
        )
        if not self._save(snapshot):
            return self._noop(key, None, "snapshot could not be written", io_failed=True)
        self.observer.info(f"Snapshot created for {key}: {snapshot.describe()}")
        return ReconcileResult(ReconcileOutcome.CREATED, key, snapshot=snapshot)

    def _restore_targets(self, snapshot: Snapshot, parsed: ParsedStats) -> List[PatchTarget]:
        targets: List[PatchTarget] = []
        level_written = False
        if parsed.level_match is not None and level_known(snapshot.level) and parsed.level != snapshot.level:
            targets.append(PatchTarget(parsed.level_match, snapshot.level))
            level_written = True

        if parsed.experience_match is not None and experience_known(snapshot.experience):
            if level_written or parsed.level_known:
                differs = parsed.experience != snapshot.experience
            else:
                # Without a level we can't tell whether a higher value is progress.
                differs = parsed.experience < snapshot.experience
            if differs:
                targets.append(PatchTarget(parsed.experience_match, snapshot.experience))

        if targets and self.restore_attributes:
            for name, match in parsed.attribute_matches.items():
                value = snapshot.attributes.get(name)
                if value is not None and parsed.attributes.get(name) != value:
                    targets.append(PatchTarget(match, value))
        return targets

    def _restore(self, snapshot: Snapshot, parsed: ParsedStats, record_path: Path) -> ReconcileResult:
        key = snapshot.key
        targets = self._restore_targets(snapshot, parsed)
        if not targets:
            self.observer.warning(
                f"{key} is behind its snapshot ({parsed.describe()} < {snapshot.describe()}) "
                "but has no patchable field"
            )
            return self._noop(key, snapshot, "no patchable field")

        try:
            result = self.writer.patch_file(record_path, targets, required_fields=PROGRESS_FIELDS)
        except PatchWriteError as e:
            self.observer.warning(f"Failed to restore {key}: {e}")
            return self._noop(key, snapshot, str(e), io_failed=True)

        if not result.ok:
            self.observer.warning(f"Format mismatch restoring {key}; refused {result.refused}")
            return ReconcileResult(ReconcileOutcome.NOOP, key, snapshot=snapshot, patch=result,
                                   reason="format mismatch")

        # Only snapshot values are written back, so the snapshot itself is already current.
        self.observer.info(f"Restored {record_path.name} from snapshot: {result.applied}")
        return ReconcileResult(ReconcileOutcome.RESTORED, key, snapshot=snapshot, patch=result)

    def _update(self, snapshot: Snapshot, parsed: ParsedStats, disk_level: int, disk_exp: int) -> ReconcileResult:
        key = snapshot.key
        previous = snapshot.describe()
        snapshot.level, snapshot.experience = advance(snapshot.level, snapshot.experience, disk_level, disk_exp)
        snapshot.attributes.update(parsed.attributes)
        if parsed.nick:
            snapshot.nick = parsed.nick
        if parsed.class_id:
            snapshot.class_id = parsed.class_id

        if not self._save(snapshot):
            return self._noop(key, None, "snapshot could not be written", io_failed=True)
        self.observer.info(f"Snapshot for {key} advanced: {previous} -> {snapshot.describe()}")
        return ReconcileResult(ReconcileOutcome.UPDATED, key, snapshot=snapshot)

    def _save(self, snapshot: Snapshot) -> bool:
        try:
            self.store.save(snapshot)
        except SnapshotStoreError as e:
            self.observer.warning(str(e))
            return False
        return True

    def _noop(
        self, key: str, snapshot: Optional[Snapshot], reason: str, io_failed: bool = False
    ) -> ReconcileResult:
        self.observer.debug(f"No reconcile change for {key}: {reason}")
        return ReconcileResult(ReconcileOutcome.NOOP, key, snapshot=snapshot, reason=reason,
                               io_failed=io_failed)
