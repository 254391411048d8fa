"""Tests for the profile stats parser."""

import pytest
from ProgressVault.records.stats_parser import StatsParser, parse
from helpers.profile_ground import profile_text


def test_parse_plain_profile():
    """Test that the usual key=value profile yields every tracked field."""
    stats = parse(profile_text(level=8, exp=100))

    assert stats is not None
    assert stats.level == 8
    assert stats.experience == 100
    assert stats.level_known and stats.experience_known
    assert stats.attributes == {"str": 5, "dex": 4, "mind": 3, "vit": 6}
    assert stats.nick == "Ingrid"
    assert stats.class_id == "_fighter"


def test_descriptor_records_exact_token():
    """Test that the match descriptor points at the token in the text."""
    text = profile_text(level=8, exp=100)
    stats = parse(text)

    match = stats.level_match
    assert match.alias == "level"
    assert match.token == "level=8"
    assert text[match.start:match.end] == "level=8"
    assert text[match.value_start:match.value_end] == "8"
    assert match.value_text == "8"
    assert match.matches(text)


def test_colon_quotes_and_case():
    """Test tolerance for `key: value`, quoting, whitespace and case."""
    text = '{\n  "Level" :  "12",\n  \'EXP\':\t4500\n}\n'
    stats = parse(text)

    assert stats.level == 12
    assert stats.experience == 4500
    assert stats.level_match.token == '"Level" :  "12"'


def test_alias_priority():
    """Test that a higher-priority alias wins even when it appears later."""
    text = "lvl=3\nxp=5\nlevel=9\nexp=70\n"
    stats = parse(text)

    assert stats.level == 9
    assert stats.level_match.alias == "level"
    assert stats.experience == 70
    assert stats.experience_match.alias == "exp"


def test_fallback_alias_used_when_primary_missing():
    stats = parse("mainLevel = 7\ntotalExp: 1234\n")

    assert stats.level == 7
    assert stats.level_match.alias == "mainLevel"
    assert stats.experience == 1234
    assert stats.experience_match.alias == "totalExp"


def test_alias_matches_whole_word_only():
    """Test that `maxLevel` or `levelCap` never satisfy `level`."""
    stats = parse("maxLevel=50\nlevelCap=60\nlvl=4\nexpBonus=2\n")

    assert stats.level == 4
    assert stats.level_match.alias == "lvl"
    assert stats.experience_match is None
    assert not stats.experience_known


def test_neither_field_located():
    """Test that a record without level or experience is a parse failure."""
    assert parse("nick=Ingrid\nclass=_mage\n") is None
    assert parse("") is None


def test_only_experience_located():
    stats = parse("exp=250\n")

    assert stats is not None
    assert not stats.level_known
    assert stats.level == 0
    assert stats.experience_known
    assert stats.has_known_field


def test_zero_level_is_unknown_but_located():
    """Test the sanity clamp keeps the descriptor for a level of 0."""
    stats = parse("level=0\nexp=10\n")

    assert stats.level == 0
    assert stats.level_match is not None
    assert not stats.level_known


def test_negative_experience_is_unknown_but_located():
    stats = parse("level=3\nexp=-40\n")

    assert stats.experience == -1
    assert stats.experience_match.value_text == "-40"
    assert not stats.experience_known


def test_float_value_not_an_integer():
    assert parse("level=8.5\n") is None


def test_out_of_range_value_falls_through_to_next_alias():
    """Test that a value beyond int64 is skipped in favour of the next alias."""
    stats = parse("exp=99999999999999999999\nxp=12\n")

    assert stats.experience == 12
    assert stats.experience_match.alias == "xp"


def test_custom_aliases():
    parser = StatsParser(level_aliases=("rank",), experience_aliases=("points",))
    stats = parser.parse("rank=4\npoints=8\nlevel=99\n")

    assert stats.level == 4
    assert stats.experience == 8


def test_observer_receives_debug_messages():
    """Test that the injected observer hears about clamped values."""
    messages = []

    class Recorder:
        def debug(self, msg, *args):
            messages.append(msg)

        info = warning = debug

    StatsParser(observer=Recorder()).parse("level=0\n")
    assert any("unknown" in m for m in messages)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
