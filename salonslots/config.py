"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import InvalidTimeError
from .domain.models import WorkingHours, parse_clock_time


class DefaultsConfig(BaseModel):
    """Fallbacks used when the record store has no value."""
    slot_interval_minutes: int = 30
    duration_minutes: int = 60
    working_start: str = "09:00"
    working_end: str = "18:00"

    @field_validator("slot_interval_minutes", "duration_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure minute settings are positive."""
        if value <= 0:
            raise ValueError("minute settings must be greater than zero")
        return value

    @field_validator("working_start", "working_end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        """Validate HH:MM format."""
        try:
            parse_clock_time(value)
        except InvalidTimeError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "DefaultsConfig":
        """Ensure the default window opens before it closes."""
        if parse_clock_time(self.working_end) <= parse_clock_time(self.working_start):
            raise ValueError("working_end must be later than working_start")
        return self

    def get_working_hours(self) -> WorkingHours:
        """Get the default working window."""
        return WorkingHours.parse(self.working_start, self.working_end)


class StoreConfig(BaseModel):
    """Record store connection settings."""
    base_url: str = ""
    api_key: str = ""
    timeout_seconds: float = 10.0
    mock_data_file: Optional[Path] = None

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class RateLimitConfig(BaseModel):
    """Per-client request limits for the public endpoints."""
    limit: int = 10
    window_seconds: int = 60

    @field_validator("window_seconds")
    @classmethod
    def validate_window(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("window_seconds must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    store: StoreConfig = Field(default_factory=StoreConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    timezone: str = "Asia/Colombo"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load config from ``config_path`` or the default location, else built-in defaults."""
    path = config_path or get_default_config_path()
    if config_path is None and not path.exists():
        return AppConfig()
    return AppConfig.load_from_yaml(path)
