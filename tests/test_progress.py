"""Tests for progress ordering helpers."""

import pytest
from ProgressVault.progress import advance, compare_progress


@pytest.mark.parametrize("a,b,expected", [
    ((5, 50), (7, 10), +1),
    ((10, 500), (8, 100), -1),
    ((6, 60), (6, 61), +1),
    ((6, 60), (6, 60), 0),
    ((6, 60), (0, 900), -1),
    ((6, 60), (6, -1), -1),
])
def test_compare_progress(a, b, expected):
    assert compare_progress(*a, *b) == expected


def test_advance_takes_higher_level_with_its_experience():
    assert advance(5, 50, 7, 10) == (7, 10)


def test_advance_higher_level_unknown_experience_resets_to_zero():
    assert advance(5, 50, 7, -1) == (7, 0)


def test_advance_same_level_keeps_max_experience():
    assert advance(5, 50, 5, 40) == (5, 50)
    assert advance(5, 50, 5, 60) == (5, 60)


def test_advance_never_goes_back():
    assert advance(5, 50, 4, 999) == (5, 50)


def test_advance_ignores_experience_without_level():
    """Test that experience alone can't move a snapshot that has a level."""
    assert advance(5, 50, 0, 999) == (5, 50)
    assert advance(0, 50, 0, 999) == (0, 999)
