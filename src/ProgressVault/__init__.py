"""ProgressVault: anti-regression guard for locally stored profile progress."""

__version__ = "0.4.16"
