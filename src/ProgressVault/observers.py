"""Diagnostics sink injected into the core components.

Any ``logging.Logger`` satisfies ``VaultObserver``, so callers normally pass
``logging.getLogger("ProgressVault")``. Components default to ``NullObserver``
and stay silent unless one is given.
"""

import logging
import sys
from typing import Protocol


class VaultObserver(Protocol):
    """Minimal logger-shaped interface used by parser, engine and watcher."""

    def debug(self, msg: str, *args) -> None: ...

    def info(self, msg: str, *args) -> None: ...

    def warning(self, msg: str, *args) -> None: ...


class NullObserver:
    """Observer that drops everything."""

    def debug(self, msg: str, *args) -> None:
        pass

    def info(self, msg: str, *args) -> None:
        pass

    def warning(self, msg: str, *args) -> None:
        pass


def enable_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Enable console logging for ProgressVault.

    Args:
        level: Logging level (default INFO)

    Returns:
        The package logger, usable as a VaultObserver
    """
    logger = logging.getLogger("ProgressVault")
    logger.setLevel(level)

    # Check if handler already exists to avoid duplicates
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            '%(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(handler)
    return logger
