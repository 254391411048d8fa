"""
Profile Ground Helper - builds profile files the way the game writes them

Provides helpers for:
- Rendering profile text (key=value lines mixed with unrelated fields)
- Writing profiles into a fake profileCollections directory
- Bumping mtimes so "most recent" lookups are deterministic

Usage:
    from helpers.profile_ground import ProfileGround

    ground = ProfileGround(tmp_path / "profileCollections")
    path = ground.write(slot=0, level=8, exp=100)
"""

import os
from pathlib import Path
from typing import Optional


def profile_text(
    level: Optional[int] = 8,
    exp: Optional[int] = 100,
    nick: str = "Ingrid",
    class_id: str = "_fighter",
    strength: int = 5,
    dex: int = 4,
    mind: int = 3,
    vit: int = 6,
    newline: str = "\n",
) -> str:
    """Render a profile in the plain ``key=value`` layout."""
    lines = [
        "# character profile",
        f"nick={nick}",
        f"class={class_id}",
        "_hairStyleID=2",
    ]
    if level is not None:
        lines.append(f"level={level}")
    if exp is not None:
        lines.append(f"exp={exp}")
    lines += [
        f"str={strength}",
        f"dex={dex}",
        f"mind={mind}",
        f"vit={vit}",
        "_isEmptySlot=False",
    ]
    return newline.join(lines) + newline


class ProfileGround:
    """A fake profile directory."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path(self, slot: int = 0) -> Path:
        return self.root / f"atl_characterProfile_{slot}"

    def write(self, slot: int = 0, text: Optional[str] = None, **fields) -> Path:
        path = self.path(slot)
        if text is None:
            text = profile_text(**fields)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        return path

    def read(self, slot: int = 0) -> str:
        with open(self.path(slot), "r", encoding="utf-8", newline="") as f:
            return f.read()

    @staticmethod
    def touch(path: Path, mtime: float) -> None:
        os.utime(path, (mtime, mtime))
