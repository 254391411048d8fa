"""Exceptions raised inside ProgressVault.

None of these escape the reconcile engine; they exist so the store and the
patch writer can report I/O trouble to it without returning sentinels.
"""


class ProgressVaultError(Exception):
    """Base class for ProgressVault errors."""


class SnapshotStoreError(ProgressVaultError):
    """A snapshot file exists but could not be read or written."""


class PatchWriteError(ProgressVaultError):
    """The watched record could not be read back or replaced."""
