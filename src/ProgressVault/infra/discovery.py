"""Locating the profile directory and deciding which files in it we track."""

import fnmatch
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union

from ProgressVault.observers import NullObserver, VaultObserver

DEFAULT_PROFILE_GLOB = "atl_characterProfile_*"
BACKUP_SUFFIXES = (".bak", ".backup", ".old", ".orig", ".tmp", "~")
BACKUP_MARKERS = ("backup",)


class ProfileDiscovery(Protocol):
    """What the watcher needs to know about the watched directory."""

    root: Path

    def is_eligible(self, path: Union[str, Path]) -> bool: ...

    def is_backup(self, path: Union[str, Path]) -> bool: ...

    def most_recent(self) -> Optional[Path]: ...


def locate_profiles_root(game_root: Union[str, Path]) -> Optional[Path]:
    """Return ``<game_root>/ATLYSS_Data/profileCollections`` if it exists."""
    root = Path(game_root) / "ATLYSS_Data" / "profileCollections"
    return root if root.is_dir() else None


class ProfileDirectory:
    """Default discovery: one flat directory, names matched by a glob."""

    def __init__(
        self,
        root: Union[str, Path],
        pattern: str = DEFAULT_PROFILE_GLOB,
        backup_suffixes: Sequence[str] = BACKUP_SUFFIXES,
        backup_markers: Sequence[str] = BACKUP_MARKERS,
        observer: Optional[VaultObserver] = None,
    ):
        """
        Initialize profile directory discovery.

        Args:
            root: Directory holding the profile files (not searched recursively)
            pattern: Glob that eligible file names must match
            backup_suffixes: Name endings that mark backup/archival copies
            backup_markers: Substrings that mark backup/archival copies
            observer: Diagnostics sink (no-op if None)
        """
        self.root = Path(root).resolve()
        self.pattern = pattern
        self.backup_suffixes = tuple(s.lower() for s in backup_suffixes)
        self.backup_markers = tuple(m.lower() for m in backup_markers)
        self.observer = observer or NullObserver()

    def is_eligible(self, path: Union[str, Path]) -> bool:
        path = Path(path)
        if path.parent.resolve() != self.root:
            return False
        return fnmatch.fnmatch(path.name, self.pattern)

    def is_backup(self, path: Union[str, Path]) -> bool:
        name = Path(path).name.lower()
        if name.startswith("."):
            return True
        if name.endswith(self.backup_suffixes):
            return True
        return any(marker in name for marker in self.backup_markers)

    def most_recent(self) -> Optional[Path]:
        """Most recently modified eligible, non-backup file, or None."""
        best: Optional[Path] = None
        best_mtime = -1
        try:
            candidates = list(self.root.glob(self.pattern))
        except OSError as e:
            self.observer.warning(f"Cannot list {self.root}: {e}")
            return None
        for candidate in candidates:
            if self.is_backup(candidate):
                continue
            try:
                st = candidate.stat()
            except OSError:
                continue
            if not candidate.is_file():
                continue
            if st.st_mtime_ns > best_mtime:
                best_mtime = st.st_mtime_ns
                best = candidate
        return best
