"""
ubimkvol configuration management.

Provides centralized configuration with validation using Pydantic.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "UBIMKVOL_CONFIG"

# Maximum device node name length
MAX_NODE_LEN = 255


def default_config_path() -> Path:
    """Config file location, overridable through the environment."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".ubimkvol" / "config.json"


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    file_enabled: bool = False
    console_enabled: bool = False
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: Path.home() / ".ubimkvol" / "logs")

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()


class UbiConfig(BaseModel):
    """Where the UBI device manager lives on this system."""

    sysfs_root: Path = Path("/sys/class/ubi")
    max_node_length: int = Field(default=MAX_NODE_LEN, ge=1, le=4096)


class UbiMkvolConfig(BaseModel):
    """Main ubimkvol configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ubi: UbiConfig = Field(default_factory=UbiConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> UbiMkvolConfig:
        """Load configuration from file or create default."""
        if config_path is None:
            config_path = default_config_path()

        if config_path.exists():
            with open(config_path) as f:
                data = json.load(f)
            return cls.model_validate(data)

        return cls()

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = default_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)


def load_config(config_path: Path | None = None) -> UbiMkvolConfig:
    """Load or create configuration."""
    return UbiMkvolConfig.load(config_path)
