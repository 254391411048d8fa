"""Format-preserving edits of profile records through match descriptors."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Collection, Dict, Iterable, List, NamedTuple, Optional, Union

from ProgressVault.errors import PatchWriteError
from ProgressVault.observers import NullObserver, VaultObserver
from ProgressVault.records.stats_parser import MatchDescriptor
from ProgressVault.utils.atomic_io import atomic_write_text, read_text_exact


class PatchStatus(Enum):
    """How many of the requested edits were applied."""
    APPLIED = "applied"
    PARTIAL = "partial"
    REFUSED = "refused"


class PatchTarget(NamedTuple):
    descriptor: MatchDescriptor
    value: int


@dataclass
class PatchResult:
    """Outcome of a patch: the new text plus which fields went through."""
    status: PatchStatus
    text: str
    applied: Dict[str, int] = field(default_factory=dict)
    refused: List[str] = field(default_factory=list)
    written: bool = False

    @property
    def ok(self) -> bool:
        return self.status is not PatchStatus.REFUSED


class SafePatchWriter:
    """Rewrites previously located numeric tokens and nothing else.

    A descriptor is trusted only if the text still holds its exact token at
    its exact offset. Anything else means the external writer changed the
    record after it was parsed, and that field is refused rather than
    re-searched.
    """

    def __init__(self, observer: Optional[VaultObserver] = None):
        self.observer = observer or NullObserver()

    def patch(
        self,
        text: str,
        targets: Iterable[PatchTarget],
        required_fields: Optional[Collection[str]] = None,
    ) -> PatchResult:
        """
        Apply targets to text.

        Args:
            text: Current record text
            targets: (descriptor, new value) pairs
            required_fields: If given, at least one of these fields must apply
                or the whole patch is refused

        Returns:
            PatchResult; REFUSED when no target could be applied
        """
        targets = [PatchTarget(*t) for t in targets]
        applied: Dict[str, int] = {}
        refused: List[str] = []

        # Back-to-front so earlier offsets stay valid as lengths change.
        ordered = sorted(targets, key=lambda t: t.descriptor.start, reverse=True)
        new_text = text
        floor = len(text)
        for target in ordered:
            desc = target.descriptor
            if target.value < 0:
                self.observer.warning(f"Refusing to write negative {desc.field}={target.value}")
                refused.append(desc.field)
                continue
            if desc.end > floor or not desc.matches(text):
                self.observer.warning(
                    f"Format mismatch for {desc.field}: expected {desc.token!r} at {desc.span}"
                )
                refused.append(desc.field)
                continue
            new_text = new_text[:desc.value_start] + str(target.value) + new_text[desc.value_end:]
            applied[desc.field] = target.value
            floor = desc.start

        if required_fields is not None and not any(f in applied for f in required_fields):
            refused = sorted(set(refused) | set(applied))
            applied = {}

        if not applied:
            status = PatchStatus.REFUSED
            new_text = text
        elif refused:
            status = PatchStatus.PARTIAL
        else:
            status = PatchStatus.APPLIED
        return PatchResult(status=status, text=new_text, applied=applied, refused=sorted(refused))

    def patch_file(
        self,
        path: Union[str, Path],
        targets: Iterable[PatchTarget],
        required_fields: Optional[Collection[str]] = None,
    ) -> PatchResult:
        """
        Patch a record on disk, re-reading it first so descriptors are checked
        against what is actually there now.

        Nothing is written when the patch is refused or changes no bytes.

        Raises:
            PatchWriteError: If the file cannot be read or replaced
        """
        path = Path(path)
        try:
            current = read_text_exact(path)
        except OSError as e:
            raise PatchWriteError(f"Cannot read {path}: {e}") from e

        result = self.patch(current, targets, required_fields)
        if not result.ok or result.text == current:
            return result

        try:
            atomic_write_text(path, result.text)
        except OSError as e:
            raise PatchWriteError(f"Cannot replace {path}: {e}") from e
        result.written = True
        self.observer.debug(f"Patched {path.name}: {result.applied}")
        return result
