"""
Stats parser for externally written profile records.

Profile files are loosely structured text: ``key=value`` or ``key: value``
lines, sometimes quoted, mixed with content we don't understand. Field names
drift between writer versions, so every tracked field has an ordered list of
aliases and the first alias yielding an integer wins.

Every located value carries a ``MatchDescriptor`` recording the exact token it
came from. The patch writer edits through that descriptor instead of
searching again, so a record whose layout shifted is refused, not guessed at.

Usage:
    parser = StatsParser()
    stats = parser.parse(text)
    if stats and stats.level_known:
        print(stats.level, stats.level_match.span)
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from ProgressVault.observers import NullObserver, VaultObserver
from ProgressVault.progress import (
    MAX_EXPERIENCE,
    MAX_LEVEL,
    UNKNOWN_EXPERIENCE,
    UNKNOWN_LEVEL,
)

LEVEL_ALIASES: Tuple[str, ...] = ("level", "mainLevel", "playerLevel", "lvl")
EXPERIENCE_ALIASES: Tuple[str, ...] = ("exp", "experience", "xp", "totalExp")

# Secondary attributes are restored together with level/experience but never
# take part in the ordering.
ATTRIBUTE_ALIASES: Dict[str, Tuple[str, ...]] = {
    "str": ("str", "strength"),
    "dex": ("dex", "dexterity"),
    "mind": ("mind", "intelligence"),
    "vit": ("vit", "vitality"),
}
ATTRIBUTE_ORDER: Tuple[str, ...] = tuple(ATTRIBUTE_ALIASES)
MAX_ATTRIBUTE = 2**31 - 1

NICK_ALIASES: Tuple[str, ...] = ("nick", "nickname")
CLASS_ALIASES: Tuple[str, ...] = ("class", "classId")


@dataclass(frozen=True)
class MatchDescriptor:
    """Where a value was found: the whole ``key=value`` token and its numeric part."""
    field: str
    alias: str
    start: int
    end: int
    value_start: int
    value_end: int
    token: str

    @property
    def span(self) -> Tuple[int, int]:
        return self.start, self.end

    @property
    def value_text(self) -> str:
        return self.token[self.value_start - self.start:self.value_end - self.start]

    def matches(self, text: str) -> bool:
        """True if ``text`` still holds the recorded token at the recorded offset."""
        return text[self.start:self.end] == self.token


@dataclass
class ParsedStats:
    """Values read from one profile record.

    ``level`` uses 0 and ``experience`` uses -1 for "unknown". A field is
    known only if its value is valid and it has a descriptor; a located field
    whose value failed the sanity clamp keeps its descriptor and can still be
    patched.
    """
    level: int = UNKNOWN_LEVEL
    experience: int = UNKNOWN_EXPERIENCE
    level_match: Optional[MatchDescriptor] = None
    experience_match: Optional[MatchDescriptor] = None
    attributes: Dict[str, int] = field(default_factory=dict)
    attribute_matches: Dict[str, MatchDescriptor] = field(default_factory=dict)
    nick: str = ""
    class_id: str = ""

    @property
    def level_known(self) -> bool:
        return self.level_match is not None and self.level > UNKNOWN_LEVEL

    @property
    def experience_known(self) -> bool:
        return self.experience_match is not None and self.experience > UNKNOWN_EXPERIENCE

    @property
    def has_known_field(self) -> bool:
        return self.level_known or self.experience_known

    def describe(self) -> str:
        level = str(self.level) if self.level_known else "?"
        experience = str(self.experience) if self.experience_known else "?"
        return f"level={level} exp={experience}"


def _numeric_pattern(alias: str) -> re.Pattern:
    # Whole-word key, optionally quoted, then = or :, then an optionally
    # quoted integer that is not the head of a float or identifier.
    return re.compile(
        r"(?<![\w.$-])(?P<kq>[\"']?)" + re.escape(alias) + r"(?P=kq)"
        r"[ \t]*[:=][ \t]*(?P<vq>[\"']?)(?P<value>-?\d+)(?![\w.])(?P=vq)",
        re.IGNORECASE,
    )


def _string_pattern(alias: str) -> re.Pattern:
    return re.compile(
        r"^[ \t]*(?P<kq>[\"']?)" + re.escape(alias) + r"(?P=kq)[ \t]*[:=][ \t]*(?P<value>[^\r\n]*)$",
        re.IGNORECASE | re.MULTILINE,
    )


class StatsParser:
    """Extracts level, experience and attributes from profile text."""

    def __init__(
        self,
        level_aliases: Sequence[str] = LEVEL_ALIASES,
        experience_aliases: Sequence[str] = EXPERIENCE_ALIASES,
        attribute_aliases: Optional[Mapping[str, Sequence[str]]] = None,
        observer: Optional[VaultObserver] = None,
    ):
        """
        Initialize the parser.

        Args:
            level_aliases: Level field names, highest priority first
            experience_aliases: Experience field names, highest priority first
            attribute_aliases: Attribute name -> aliases (defaults to ATTRIBUTE_ALIASES)
            observer: Diagnostics sink (no-op if None)
        """
        if attribute_aliases is None:
            attribute_aliases = ATTRIBUTE_ALIASES
        self.observer = observer or NullObserver()
        self._level = [(a, _numeric_pattern(a)) for a in level_aliases]
        self._experience = [(a, _numeric_pattern(a)) for a in experience_aliases]
        self._attributes = {
            name: [(a, _numeric_pattern(a)) for a in aliases]
            for name, aliases in attribute_aliases.items()
        }
        self._nick = [_string_pattern(a) for a in NICK_ALIASES]
        self._class = [_string_pattern(a) for a in CLASS_ALIASES]

    def parse(self, text: str) -> Optional[ParsedStats]:
        """
        Parse a profile record.

        Args:
            text: Full record text, exactly as read from disk

        Returns:
            ParsedStats, or None if neither level nor experience was located
        """
        level_hit = self._locate(text, "level", self._level, MAX_LEVEL)
        exp_hit = self._locate(text, "experience", self._experience, MAX_EXPERIENCE)
        if level_hit is None and exp_hit is None:
            self.observer.debug("No level or experience field found")
            return None

        stats = ParsedStats()
        if level_hit is not None:
            value, stats.level_match = level_hit
            if value > 0:
                stats.level = value
            else:
                self.observer.debug(f"Level {value} at {stats.level_match.span} treated as unknown")
        if exp_hit is not None:
            value, stats.experience_match = exp_hit
            if value >= 0:
                stats.experience = value
            else:
                self.observer.debug(f"Experience {value} at {stats.experience_match.span} treated as unknown")

        for name, aliases in self._attributes.items():
            hit = self._locate(text, name, aliases, MAX_ATTRIBUTE)
            if hit is None:
                continue
            value, match = hit
            stats.attribute_matches[name] = match
            if value >= 0:
                stats.attributes[name] = value

        stats.nick = self._first_string(text, self._nick)
        stats.class_id = self._first_string(text, self._class)
        return stats

    def _locate(
        self,
        text: str,
        field_name: str,
        patterns: Iterable[Tuple[str, re.Pattern]],
        limit: int,
    ) -> Optional[Tuple[int, MatchDescriptor]]:
        """Return the first in-range integer for the highest-priority alias present."""
        for alias, pattern in patterns:
            for m in pattern.finditer(text):
                value = int(m.group("value"))
                if abs(value) > limit:
                    self.observer.debug(f"Ignoring out-of-range {alias}={m.group('value')}")
                    continue
                return value, MatchDescriptor(
                    field=field_name,
                    alias=alias,
                    start=m.start(),
                    end=m.end(),
                    value_start=m.start("value"),
                    value_end=m.end("value"),
                    token=m.group(0),
                )
        return None

    @staticmethod
    def _first_string(text: str, patterns: Iterable[re.Pattern]) -> str:
        for pattern in patterns:
            m = pattern.search(text)
            if m:
                return m.group("value").strip().rstrip(",").strip().strip("\"'")
        return ""


_default_parser: Optional[StatsParser] = None


def parse(text: str) -> Optional[ParsedStats]:
    """Parse with a shared default-configured StatsParser."""
    global _default_parser
    if _default_parser is None:
        _default_parser = StatsParser()
    return _default_parser.parse(text)
