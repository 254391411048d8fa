"""Tests for profile directory discovery."""

import pytest
from ProgressVault.infra.discovery import ProfileDirectory, locate_profiles_root


@pytest.fixture
def directory(profiles_dir) -> ProfileDirectory:
    return ProfileDirectory(profiles_dir)


def test_eligible_names(directory, profiles_dir):
    assert directory.is_eligible(profiles_dir / "atl_characterProfile_0")
    assert not directory.is_eligible(profiles_dir / "settings.json")
    assert not directory.is_eligible(profiles_dir / "sub" / "atl_characterProfile_0")


@pytest.mark.parametrize("name", [
    "atl_characterProfile_0.bak",
    "atl_characterProfile_0.backup",
    "atl_characterProfile_0_backup_2024",
    "atl_characterProfile_0.old",
    "atl_characterProfile_0~",
    ".atl_characterProfile_0.x1y2.tmp",
])
def test_backups_recognized(directory, profiles_dir, name):
    assert directory.is_backup(profiles_dir / name)


def test_live_profile_is_not_a_backup(directory, profiles_dir):
    assert not directory.is_backup(profiles_dir / "atl_characterProfile_2")


def test_most_recent_skips_backups(directory, ground):
    """Test that the newest eligible file wins and backups never do."""
    old = ground.write(slot=0)
    new = ground.write(slot=1)
    backup = ground.root / "atl_characterProfile_1.bak"
    backup.write_text("level=1\n")
    ground.touch(old, 1_000_000)
    ground.touch(new, 2_000_000)
    ground.touch(backup, 3_000_000)

    assert directory.most_recent() == new.resolve()


def test_most_recent_empty(directory):
    assert directory.most_recent() is None


def test_locate_profiles_root(tmp_path, profiles_dir):
    assert locate_profiles_root(tmp_path) == profiles_dir
    assert locate_profiles_root(tmp_path / "elsewhere") is None


def test_listing_failure_reported_to_observer(profiles_dir, recorder):
    """Test that a directory that can't be listed is reported, not raised."""
    directory = ProfileDirectory(profiles_dir, observer=recorder)

    class Unlistable:
        def glob(self, pattern):
            raise PermissionError("denied")

    directory.root = Unlistable()

    assert directory.most_recent() is None
    assert "Cannot list" in recorder.text("warning")
