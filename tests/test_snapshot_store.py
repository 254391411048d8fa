"""Tests for the snapshot store."""

import pytest
from ProgressVault.errors import SnapshotStoreError
from ProgressVault.vault.snapshot_store import Snapshot, SnapshotStore, profile_key


class TestSnapshotStore:
    """Tests for loading and saving snapshots."""

    def test_missing_snapshot_is_absent(self, store):
        assert store.load("atl_characterProfile_0") is None

    def test_save_and_load(self, store):
        """Test that a saved snapshot loads back with every field."""
        snap = Snapshot(
            key="atl_characterProfile_0",
            level=10,
            experience=500,
            attributes={"str": 5, "vit": 6},
            nick="Ingrid",
            class_id="_fighter",
        )
        store.save(snap)

        assert store.load("atl_characterProfile_0") == snap

    def test_save_creates_vault_dir(self, store, vault_dir):
        assert not vault_dir.exists()
        store.save(Snapshot(key="k", level=1, experience=0))
        assert (vault_dir / "k.vault").is_file()

    def test_fixed_field_order(self, store):
        """Test that files are regenerated deterministically."""
        snap = Snapshot(key="k", level=3, experience=40, attributes={"vit": 2, "str": 1})
        path = store.save(snap)

        assert path.read_text() == (
            "# ProgressVault snapshot\n"
            "key=k\n"
            "level=3\n"
            "exp=40\n"
            "str=1\n"
            "vit=2\n"
            "nick=\n"
            "class=\n"
        )

    def test_lenient_read(self, store, vault_dir):
        """Test that comments, unknown keys and bad numbers don't abort a read."""
        vault_dir.mkdir()
        (vault_dir / "k.vault").write_text(
            "# old format\n"
            "owner=1a2b3c4d\n"
            "level=seven\n"
            "exp=120\n"
            "dex=abc\n"
            "mind=3\n"
            "garbage line without equals\n"
        )

        snap = store.load("k")

        assert snap.level == 0
        assert snap.experience == 120
        assert snap.attributes == {"mind": 3}

    def test_unreadable_snapshot_raises(self, store, vault_dir):
        """Test that a snapshot path that can't be read is an error, not 'absent'."""
        (vault_dir / "k.vault").mkdir(parents=True)

        with pytest.raises(SnapshotStoreError):
            store.load("k")

    def test_keys(self, store):
        store.save(Snapshot(key="b", level=1))
        store.save(Snapshot(key="a", level=2))

        assert store.keys() == ["a", "b"]

    def test_keys_without_vault_dir(self, tmp_path):
        assert SnapshotStore(tmp_path / "nowhere").keys() == []


class TestProfileKey:
    """Tests for deriving keys from profile file names."""

    def test_plain_name_used_as_is(self, tmp_path):
        assert profile_key(tmp_path / "atl_characterProfile_3") == "atl_characterProfile_3"

    def test_stable(self):
        assert profile_key("/a/b/my profile.txt") == profile_key("/other/my profile.txt")

    def test_sanitized_names_stay_distinct(self):
        """Test that names which sanitize alike still get different keys."""
        spaced = profile_key("my profile")
        underscored = profile_key("my_profile")

        assert spaced != underscored
        assert underscored == "my_profile"
        assert spaced.startswith("my_profile-")

    def test_key_is_a_safe_file_name(self):
        key = profile_key("../evil/name:with*chars")
        assert "/" not in key and ":" not in key and "*" not in key


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
