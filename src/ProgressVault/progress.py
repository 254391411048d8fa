"""Ordering rules for (level, experience) pairs."""
from typing import Tuple

# Sentinels for values that were never located or failed the sanity clamp.
# Both sort below every valid value, which is how unknowns compare.
UNKNOWN_LEVEL = 0
UNKNOWN_EXPERIENCE = -1

MAX_LEVEL = 2**31 - 1
MAX_EXPERIENCE = 2**63 - 1


def level_known(level: int) -> bool:
    return level > UNKNOWN_LEVEL


def experience_known(experience: int) -> bool:
    return experience > UNKNOWN_EXPERIENCE


def compare_progress(level0: int, exp0: int, level1: int, exp1: int) -> int:
    """Compare two progress pairs, level first, experience as tie-break.

    Returns:
        +1 if the second pair is ahead, -1 if it is behind, 0 if equal.
    """
    if level1 > level0:
        return +1
    if level1 < level0:
        return -1
    if exp1 > exp0:
        return +1
    if exp1 < exp0:
        return -1
    return 0


def advance(level: int, experience: int, new_level: int, new_experience: int) -> Tuple[int, int]:
    """Merge an observed pair into a best-known pair without ever going backwards.

    Unknown observed values never replace known ones. Reaching a higher level
    takes the observed experience, or 0 when it is unknown, since experience
    from a lower level says nothing about the new one.
    """
    if level_known(new_level):
        if new_level > level:
            return new_level, new_experience if experience_known(new_experience) else 0
        if new_level < level:
            return level, experience
    elif level_known(level):
        # Can't place the observed experience on the level axis.
        return level, experience
    return level, max(experience, new_experience)
