"""Helpers for replacing files without exposing half-written content."""
import os
import stat
import tempfile
from pathlib import Path
from typing import Union


def atomic_write_text(path: Union[str, Path], text: str, encoding: str = "utf-8") -> None:
    """Write text to a sibling temp file, fsync it, then ``os.replace`` it over path.

    The temp file lives in the target's directory so the replace never crosses
    filesystems. Newlines are written exactly as given, and bytes decoded with
    ``surrogateescape`` are restored unchanged.

    Raises:
        OSError: If the temp file cannot be written or the replace fails.
            The temp file is removed in that case.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding=encoding, errors="surrogateescape", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates 0600; keep whatever mode the file already had.
        try:
            os.chmod(tmp_name, stat.S_IMODE(os.stat(path).st_mode))
        except FileNotFoundError:
            pass
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def read_text_exact(path: Union[str, Path], encoding: str = "utf-8") -> str:
    """Read a file without newline translation so offsets match the file.

    Undecodable bytes survive as surrogates and round-trip through
    ``atomic_write_text``.
    """
    with open(path, "r", encoding=encoding, errors="surrogateescape", newline="") as f:
        return f.read()


def decode_exact(data: bytes, encoding: str = "utf-8") -> str:
    """Decode bytes already read from disk the same way ``read_text_exact`` would."""
    return data.decode(encoding, errors="surrogateescape")
