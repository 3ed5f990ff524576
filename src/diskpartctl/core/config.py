"""
diskpartctl configuration management.

Provides centralized configuration with validation using Pydantic.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_HOME = Path.home() / ".diskpartctl"


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = False
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "logs")
    audit_max_entries: int = Field(default=500, gt=0)

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()


class ExecutorConfig(BaseModel):
    """Configuration for running diskpart."""

    diskpart_path: str = "diskpart.exe"
    default_timeout_seconds: float = Field(default=30.0, gt=0)
    destructive_timeout_seconds: float = Field(default=60.0, gt=0)
    temp_directory: Path | None = None
    script_prefix: str = "diskpart_"

    @field_validator("temp_directory", mode="before")
    @classmethod
    def expand_temp_path(cls, v: str | Path | None) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()

    @model_validator(mode="after")
    def check_timeouts(self) -> ExecutorConfig:
        if self.destructive_timeout_seconds < self.default_timeout_seconds:
            raise ValueError("destructive_timeout_seconds must not be shorter than the default")
        return self


class SafetyConfig(BaseModel):
    """Configuration for safety checks before destructive operations."""

    require_confirmation: bool = True
    reserved_drive_letters: list[str] = Field(default_factory=lambda: ["A", "B", "C"])
    min_partition_size_bytes: int = Field(default=1024 * 1024, ge=1)
    power_check_enabled: bool = True

    @field_validator("reserved_drive_letters")
    @classmethod
    def upper_letters(cls, v: list[str]) -> list[str]:
        return [letter.upper() for letter in v]


class DiskpartCtlConfig(BaseModel):
    """Main diskpartctl configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    audit_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "audit")

    @field_validator("audit_directory", mode="before")
    @classmethod
    def expand_audit_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()

    @classmethod
    def load(cls, config_path: Path | None = None) -> DiskpartCtlConfig:
        """Load configuration from file or create default."""
        if config_path is None:
            config_path = DEFAULT_HOME / "config.json"

        if config_path.exists():
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
            return cls.model_validate(data)

        return cls()

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = DEFAULT_HOME / "config.json"

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

    def ensure_directories(self) -> None:
        """Create all required directories."""
        if self.logging.file_enabled:
            self.logging.log_directory.mkdir(parents=True, exist_ok=True)
        self.audit_directory.mkdir(parents=True, exist_ok=True)
        if self.executor.temp_directory:
            self.executor.temp_directory.mkdir(parents=True, exist_ok=True)

    def get_audit_file(self) -> Path:
        """Get path for a new audit trail file."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.audit_directory / f"audit_{timestamp}.json"


def get_default_config() -> DiskpartCtlConfig:
    """Get the default configuration."""
    return DiskpartCtlConfig()


def load_config(config_path: Path | None = None) -> DiskpartCtlConfig:
    """Load or create configuration."""
    config = DiskpartCtlConfig.load(config_path)
    config.ensure_directories()
    return config
