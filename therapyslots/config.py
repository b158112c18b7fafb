"""
Configuration management using Pydantic Settings.
"""

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import ScheduleSettings


class ScheduleDefaults(BaseModel):
    """Schedule settings used when a practitioner has none stored."""
    default_session_duration: int = 60
    min_advance_hours: int = 24
    max_advance_days: int = 60
    break_between_sessions: int = 0
    allow_back_to_back: bool = True

    @field_validator("default_session_duration")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure session duration is positive and fits in a day."""
        if not 0 < value <= 24 * 60:
            raise ValueError(f"default_session_duration must be between 1 and 1440, got {value}")
        return value

    @field_validator("min_advance_hours", "max_advance_days", "break_between_sessions")
    @classmethod
    def validate_not_negative(cls, value: int) -> int:
        """Validate window and break settings are not negative."""
        if value < 0:
            raise ValueError(f"Value cannot be negative, got {value}")
        return value


class RegionConfig(BaseModel):
    """Region used to scope holidays. Unset codes match every holiday."""
    country_code: Optional[str] = None
    state_code: Optional[str] = None
    city_code: Optional[str] = None


class AppConfig(BaseModel):
    """Application configuration."""
    snapshot_path: Optional[Path] = None
    timezone: str = "America/Sao_Paulo"
    schedule: ScheduleDefaults = Field(default_factory=ScheduleDefaults)
    region: RegionConfig = Field(default_factory=RegionConfig)
    # How to read "monthly" events stored without a month pattern
    monthly_fallback: Literal["weekday", "none"] = "weekday"
    # What to do when the data source does not supply a collection
    missing_collections: Literal["permissive", "strict"] = "permissive"

    @model_validator(mode="after")
    def validate_advance_window(self) -> "AppConfig":
        """Ensure the booking window closes after it opens."""
        if self.schedule.max_advance_days * 24 < self.schedule.min_advance_hours:
            raise ValueError("max_advance_days must cover min_advance_hours")
        return self

    def to_schedule_settings(self) -> ScheduleSettings:
        """Build the domain settings from the configured defaults."""
        return ScheduleSettings(
            default_session_duration=self.schedule.default_session_duration,
            min_advance_hours=self.schedule.min_advance_hours,
            max_advance_days=self.schedule.max_advance_days,
            break_between_sessions=self.schedule.break_between_sessions,
            allow_back_to_back=self.schedule.allow_back_to_back,
            timezone=self.timezone,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative snapshot paths are resolved against the config file's folder.

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

        config = cls(**data)

        if config.snapshot_path is not None and not config.snapshot_path.is_absolute():
            config.snapshot_path = config_path.parent / config.snapshot_path

        return config


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
