"""
IsoWizard configuration management.

Provides centralized configuration with validation using Pydantic.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from isowizard.core.models import FileSystem
from isowizard.core.units import UNALLOCATED_SLACK_BYTES

DEFAULT_HOME = Path.home() / ".isowizard"


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = True
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "logs")

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()


class ScanConfig(BaseModel):
    """Configuration for disk scanning with lsblk, parted and blkid."""

    use_sudo: bool = True
    include_loop_devices: bool = False  # dev mode: loop devices stand in for disks
    command_timeout_seconds: int = Field(default=30, ge=1, le=600)
    parted_unit: Literal["B", "KiB", "MiB", "GiB"] = "MiB"


class EditorConfig(BaseModel):
    """Defaults used by the partition editor."""

    default_fs_type: str = FileSystem.EXT4.value
    default_label: str = "New Partition"
    iso_fs_type: str = FileSystem.EXFAT.value
    iso_label: str = "ISO Storage"
    unallocated_slack_bytes: int = Field(default=UNALLOCATED_SLACK_BYTES, ge=0)
    max_history: int = Field(default=100, ge=1, le=10000)

    @field_validator("default_fs_type", "iso_fs_type")
    @classmethod
    def check_filesystem(cls, v: str) -> str:
        fs = FileSystem.from_string(v)
        if fs is None:
            raise ValueError(f"Unsupported filesystem: {v}")
        return fs.value


class IsoWizardConfig(BaseModel):
    """Main IsoWizard configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    session_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "sessions")

    @field_validator("session_directory", mode="before")
    @classmethod
    def expand_session_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()

    @classmethod
    def load(cls, config_path: Path | None = None) -> IsoWizardConfig:
        """Load configuration from file or create default."""
        if config_path is None:
            config_path = DEFAULT_HOME / "config.json"

        if config_path.exists():
            with open(config_path) as f:
                data = json.load(f)
            return cls.model_validate(data)

        return cls()

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = DEFAULT_HOME / "config.json"

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.logging.log_directory.mkdir(parents=True, exist_ok=True)
        self.session_directory.mkdir(parents=True, exist_ok=True)

    def get_session_file(self) -> Path:
        """Get path for a new session log file."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.session_directory / f"session_{timestamp}.json"


def get_default_config() -> IsoWizardConfig:
    """Get the default configuration."""
    return IsoWizardConfig()


def load_config(config_path: Path | None = None) -> IsoWizardConfig:
    """Load or create configuration."""
    config = IsoWizardConfig.load(config_path)
    config.ensure_directories()
    return config
