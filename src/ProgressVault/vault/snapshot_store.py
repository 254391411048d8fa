"""
Snapshot store: the best-known progress per profile, one small file each.

Files are ``<vault_dir>/<key>.vault`` holding ``key=value`` lines. Reading is
lenient (comments and unknown keys are skipped, a bad number becomes the
unknown sentinel for that field) so an older or newer file never blocks a
reconcile. Writing always emits the same fields in the same order.

Nothing here identifies the machine or the user; the vault only ever holds
values that were read from the profile itself.
"""

import hashlib
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from ProgressVault.errors import SnapshotStoreError
from ProgressVault.observers import NullObserver, VaultObserver
from ProgressVault.progress import UNKNOWN_EXPERIENCE, UNKNOWN_LEVEL
from ProgressVault.records.stats_parser import ATTRIBUTE_ORDER
from ProgressVault.utils.atomic_io import atomic_write_text, read_text_exact

SNAPSHOT_SUFFIX = ".vault"
HEADER = "# ProgressVault snapshot"

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def profile_key(path: Union[str, Path]) -> str:
    """Derive the snapshot key for a profile file from its name.

    Names made only of ``[A-Za-z0-9._-]`` are used as-is. Anything else is
    replaced with ``_`` and a short digest of the real name is appended, so
    two names that sanitize the same way still get different keys.
    """
    name = Path(path).name
    safe = _UNSAFE_KEY_CHARS.sub("_", name)
    if safe != name or safe.startswith("."):
        digest = hashlib.sha1(name.encode("utf-8", "surrogateescape")).hexdigest()[:8]
        safe = f"{safe.lstrip('.') or 'profile'}-{digest}"
    return safe


@dataclass
class Snapshot:
    """Best-known progress for one profile key."""
    key: str
    level: int = UNKNOWN_LEVEL
    experience: int = UNKNOWN_EXPERIENCE
    attributes: Dict[str, int] = field(default_factory=dict)
    nick: str = ""
    class_id: str = ""

    def describe(self) -> str:
        return f"level={self.level} exp={self.experience}"


def _parse_int(value: str, fallback: int) -> int:
    try:
        return int(value)
    except ValueError:
        return fallback


def _one_line(value: str) -> str:
    return value.replace("\r", " ").replace("\n", " ").strip()


class SnapshotStore:
    """Loads and saves Snapshots under a dedicated directory."""

    def __init__(self, vault_dir: Union[str, Path], observer: Optional[VaultObserver] = None):
        """
        Initialize the store.

        Args:
            vault_dir: Directory holding one ``.vault`` file per key
            observer: Diagnostics sink (no-op if None)
        """
        self.vault_dir = Path(vault_dir)
        self.observer = observer or NullObserver()

    def ensure_ready(self) -> Path:
        """Create the vault directory if missing."""
        try:
            self.vault_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SnapshotStoreError(f"Could not create vault dir {self.vault_dir}: {e}") from e
        return self.vault_dir

    def path_for(self, key: str) -> Path:
        return self.vault_dir / f"{key}{SNAPSHOT_SUFFIX}"

    def keys(self) -> List[str]:
        """List the keys that currently have a snapshot file."""
        if not self.vault_dir.is_dir():
            return []
        return sorted(p.name[:-len(SNAPSHOT_SUFFIX)] for p in self.vault_dir.glob(f"*{SNAPSHOT_SUFFIX}"))

    def load(self, key: str) -> Optional[Snapshot]:
        """
        Load the snapshot for key.

        Returns:
            Snapshot, or None if no snapshot file exists

        Raises:
            SnapshotStoreError: If the file exists but cannot be read
        """
        path = self.path_for(key)
        try:
            text = read_text_exact(path)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeError) as e:
            raise SnapshotStoreError(f"Failed to read snapshot {path}: {e}") from e
        return self.parse(key, text)

    def parse(self, key: str, text: str) -> Snapshot:
        snapshot = Snapshot(key=key)
        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            name, sep, value = line.partition("=")
            if not sep:
                continue
            name = name.strip()
            value = value.strip()

            if name == "level":
                level = _parse_int(value, UNKNOWN_LEVEL)
                snapshot.level = level if level > UNKNOWN_LEVEL else UNKNOWN_LEVEL
            elif name == "exp":
                experience = _parse_int(value, UNKNOWN_EXPERIENCE)
                snapshot.experience = experience if experience > UNKNOWN_EXPERIENCE else UNKNOWN_EXPERIENCE
            elif name in ATTRIBUTE_ORDER:
                attr = _parse_int(value, -1)
                if attr >= 0:
                    snapshot.attributes[name] = attr
            elif name == "nick":
                snapshot.nick = value
            elif name == "class":
                snapshot.class_id = value
            elif name != "key":
                self.observer.debug(f"Ignoring unknown snapshot field {name!r} in {key}")
        return snapshot

    @staticmethod
    def render(snapshot: Snapshot) -> str:
        lines = [
            HEADER,
            f"key={snapshot.key}",
            f"level={snapshot.level}",
            f"exp={snapshot.experience}",
        ]
        for name in ATTRIBUTE_ORDER:
            if name in snapshot.attributes:
                lines.append(f"{name}={snapshot.attributes[name]}")
        lines.append(f"nick={_one_line(snapshot.nick)}")
        lines.append(f"class={_one_line(snapshot.class_id)}")
        return "\n".join(lines) + "\n"

    def save(self, snapshot: Snapshot) -> Path:
        """
        Persist a snapshot atomically.

        Raises:
            SnapshotStoreError: If the directory or file cannot be written
        """
        self.ensure_ready()
        path = self.path_for(snapshot.key)
        try:
            atomic_write_text(path, self.render(snapshot))
        except OSError as e:
            raise SnapshotStoreError(f"Failed to write snapshot {path}: {e}") from e
        self.observer.debug(f"Saved snapshot {snapshot.key}: {snapshot.describe()}")
        return path
