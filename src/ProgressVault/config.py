"""Centralized configuration for the ProgressVault runtime.

Values come from ``PROGRESSVAULT_*`` environment variables, a ``.env`` file in
the working directory, or keyword arguments (the CLI passes its flags this
way). Nothing here is required: the profile directory can be given directly
or found under the game root, and the vault defaults to a directory in the
user's home.
"""
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ProgressVault.infra.discovery import DEFAULT_PROFILE_GLOB, locate_profiles_root

DEFAULT_VAULT_DIR = Path.home() / ".progressvault" / "vault"


class VaultConfig(BaseSettings):
    """Runtime settings for watching profiles and keeping snapshots.

    Example:
        >>> config = VaultConfig(profiles_dir="/games/atlyss/ATLYSS_Data/profileCollections")
        >>> config.debounce_ms
        250
    """
    model_config = SettingsConfigDict(
        env_prefix="PROGRESSVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Where the profiles live
    game_root: Optional[Path] = Field(
        default=None,
        description="Game install root; profiles are looked up under ATLYSS_Data/profileCollections"
    )
    profiles_dir: Optional[Path] = Field(
        default=None,
        description="Profile directory (overrides game_root auto-detection)"
    )
    profile_glob: str = Field(
        default=DEFAULT_PROFILE_GLOB,
        description="Glob that tracked profile file names must match"
    )

    # Where snapshots live
    vault_dir: Optional[Path] = Field(
        default=None,
        description="Snapshot directory (defaults to ~/.progressvault/vault)"
    )

    # Watcher timing
    debounce_ms: int = Field(default=250, description="Quiet period before a burst is processed")
    poll_interval_s: float = Field(default=5.0, description="Most-recent-profile poll interval")
    bootstrap_delay_s: float = Field(default=2.0, description="Delay before the first poll")
    max_read_retries: int = Field(default=5, description="Retries for a locked profile file")
    retry_delay_ms: int = Field(default=100, description="Delay between locked-file retries")

    restore_attributes: bool = Field(
        default=True,
        description="Also restore str/dex/mind/vit when restoring level and experience"
    )
    log_level: str = Field(default="INFO", description="Logging level name")

    @field_validator("debounce_ms", "retry_delay_ms", "max_read_retries")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("poll_interval_s")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()

    def get_profiles_dir(self) -> Path:
        """Get the profile directory with auto-detection.

        Returns:
            Path to the directory holding the profile files

        Raises:
            ValueError: If neither setting leads to an existing directory
        """
        if self.profiles_dir:
            path = Path(self.profiles_dir).expanduser()
            if path.is_dir():
                return path
            raise ValueError(f"Profile directory not found: {path}")

        if self.game_root:
            found = locate_profiles_root(Path(self.game_root).expanduser())
            if found:
                return found
            raise ValueError(
                f"No ATLYSS_Data/profileCollections under {self.game_root}\n"
                "Please set PROGRESSVAULT_PROFILES_DIR environment variable."
            )

        raise ValueError(
            "Cannot locate the profile directory.\n"
            "Please set PROGRESSVAULT_PROFILES_DIR or PROGRESSVAULT_GAME_ROOT."
        )

    def get_vault_dir(self) -> Path:
        """Get the snapshot directory, creating it if needed."""
        path = Path(self.vault_dir).expanduser() if self.vault_dir else DEFAULT_VAULT_DIR
        path.mkdir(parents=True, exist_ok=True)
        return path
