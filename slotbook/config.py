"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import BufferConfig, WorkingHours
from .domain.timezones import DEFAULT_TIMEZONE, is_valid_timezone

ACCESS_TOKEN_ENV_VAR = "SLOTBOOK_GOOGLE_ACCESS_TOKEN"


class WorkingHoursConfig(BaseModel):
    """Bookable hours of a working day, as a half-open interval."""
    start: int = 9
    end: int = 17

    @field_validator("start", "end")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 24."""
        if not 0 <= v <= 24:
            raise ValueError(f"Hour must be between 0 and 24, got {v}")
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "WorkingHoursConfig":
        """Ensure the configured window opens before it closes."""
        if self.end <= self.start:
            raise ValueError("working_hours.end must be later than working_hours.start")
        return self


class GoogleConfig(BaseModel):
    """Google Calendar connection settings."""
    calendar_id: str = "primary"
    access_token: str = ""

    def resolve_access_token(self) -> str:
        """Return the configured token, falling back to the environment."""
        return self.access_token or os.environ.get(ACCESS_TOKEN_ENV_VAR, "")


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = DEFAULT_TIMEZONE
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    working_days: List[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4])  # Monday to Friday
    warmup_minutes: int = 30
    cooldown_minutes: int = 30
    min_booking_lead_hours: float = 1
    meeting_minutes: int = 30
    calendar_timeout_seconds: float = 15
    google: GoogleConfig = Field(default_factory=GoogleConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """The default timezone must be a recognised zone."""
        if not is_valid_timezone(value):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("warmup_minutes", "cooldown_minutes", "min_booking_lead_hours")
    @classmethod
    def validate_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"Value must be non-negative, got {value}")
        return value

    @field_validator("meeting_minutes", "calendar_timeout_seconds")
    @classmethod
    def validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"working_days must be between 0 and 6, got {invalid_days}")
        # Preserve order while removing duplicates
        seen: set[int] = set()
        deduped: List[int] = []
        for day in value:
            if day not in seen:
                deduped.append(day)
                seen.add(day)
        return deduped

    def buffer_config(self) -> BufferConfig:
        return BufferConfig(
            warmup_minutes=self.warmup_minutes,
            cooldown_minutes=self.cooldown_minutes,
        )

    def working_hours_model(self) -> WorkingHours:
        return WorkingHours(
            start_hour=self.working_hours.start,
            end_hour=self.working_hours.end,
            working_days=tuple(self.working_days),
        )

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
    """Load the configuration, using defaults when no file exists."""
    path = config_path or get_default_config_path()
    if config_path is None and not path.exists():
        return AppConfig()
    return AppConfig.load_from_yaml(path)
