"""Configuration management for romcomp."""

import os
from pathlib import Path

import tomli
from pydantic import BaseModel, Field, field_validator


def _default_threads() -> int:
    return os.cpu_count() or 1


class RomcompConfig(BaseModel):
    """Main configuration for romcomp."""

    # Scheduling
    threads: int = Field(default_factory=_default_threads)
    poll_interval: float = Field(default=0.05)  # seconds between polls
    chunk_size: int = Field(default=1024 * 1024)  # packaging read size

    # Post-conversion behaviour
    remove_after_compression: bool = Field(default=False)
    flatten: bool = Field(default=False)

    # Classification
    verify_cue_tracks: bool = Field(default=True)

    # Paths
    scratch_dir: Path | None = None
    log_dir: Path | None = None

    # dolphin-tool settings for Wii images
    wii_block_size: int = Field(default=131072)
    wii_compression: str = Field(default="zstd")
    wii_compression_level: int = Field(default=5)

    @field_validator("scratch_dir", "log_dir", mode="before")
    @classmethod
    def expand_paths(cls, v: Path | str | None) -> Path | None:
        """Expand user home directory in paths."""
        if v is None:
            return None
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser().resolve()

    @field_validator("threads", "chunk_size")
    @classmethod
    def positive_int(cls, v: int) -> int:
        if v < 1:
            msg = "must be at least 1"
            raise ValueError(msg)
        return v

    @field_validator("poll_interval")
    @classmethod
    def positive_interval(cls, v: float) -> float:
        if v <= 0:
            msg = "poll interval must be positive"
            raise ValueError(msg)
        return v

    def ensure_directories(self) -> None:
        """Create configured directories if they don't exist."""
        for dir_path in [self.scratch_dir, self.log_dir]:
            if dir_path is not None:
                dir_path.mkdir(parents=True, exist_ok=True)


def load_config(config_path: Path | None = None) -> RomcompConfig:
    """Load configuration from file or defaults."""
    if config_path is None:
        possible_paths = [
            Path.home() / ".config" / "romcomp" / "config.toml",  # User config
            Path.cwd() / "romcomp.toml",  # Current directory
        ]

        for path in possible_paths:
            if path.exists():
                config_path = path
                break

    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            config_data = tomli.load(f)
        return RomcompConfig(**config_data)
    # Use defaults
    return RomcompConfig()


def create_sample_config(path: Path) -> None:
    """Create a sample configuration file."""
    sample_config = """# romcomp Configuration
# =====================
# Every setting is optional. Command-line flags override the values below.

# ============================================================================
# CONVERSION BEHAVIOUR
# ============================================================================

# threads = 8                                     # Parallel conversions (default: CPU count)
remove_after_compression = false                  # Delete input files after a successful conversion
flatten = false                                   # Collapse singleton directories (requires removal)
verify_cue_tracks = true                          # Require every cue sheet track to exist as .bin

# ============================================================================
# PATHS
# ============================================================================

# scratch_dir = "~/.cache/romcomp"                # Staging area for temporary copies (default: system temp)
# log_dir = "~/.local/share/romcomp/logs"         # Write romcomp.log here when set

# ============================================================================
# ADVANCED SETTINGS - Most users can leave these as defaults
# ============================================================================

poll_interval = 0.05                              # Seconds between child process / admission polls
chunk_size = 1048576                              # Bytes read per step while zipping cartridge images

# dolphin-tool (Wii RVZ)
wii_block_size = 131072                           # RVZ block size in bytes
wii_compression = "zstd"                          # RVZ compression method
wii_compression_level = 5                         # RVZ compression level
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(sample_config)
