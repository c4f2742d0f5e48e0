"""Typed settings loader for the weather insights service."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError

DEFAULT_INTERVAL_MINUTES = 60
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def normalize_interval_minutes(value: Any, fallback: Any = DEFAULT_INTERVAL_MINUTES) -> int:
    """Return a positive whole-minute interval, or the fallback for invalid input.

    Accepts ints, integral floats and numeric strings. Booleans, non-finite,
    fractional and non-positive values are treated as invalid. An invalid
    fallback collapses to ``DEFAULT_INTERVAL_MINUTES``.
    """
    parsed = parse_interval_minutes(value)
    if parsed is not None:
        return parsed
    return parse_interval_minutes(fallback) or DEFAULT_INTERVAL_MINUTES


def parse_interval_minutes(value: Any) -> int | None:
    """Positive whole minutes, or None when ``value`` is not a usable interval."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0 or not number.is_integer():
        return None
    return int(number)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    collect_interval_minutes: int = Field(
        default=DEFAULT_INTERVAL_MINUTES,
        alias="COLLECT_INTERVAL_MINUTES",
    )
    collector_tick_seconds: float = Field(default=60.0, alias="COLLECTOR_TICK_SECONDS")
    collector_max_workers: int = Field(default=8, alias="COLLECTOR_MAX_WORKERS")

    open_meteo_base_url: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        alias="OPEN_METEO_BASE_URL",
    )
    weather_timeout_seconds: float = Field(default=10.0, alias="WEATHER_TIMEOUT_SECONDS")

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY", repr=False)
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openai_timeout_seconds: float = Field(default=10.0, alias="OPENAI_TIMEOUT_SECONDS")
    openai_temperature: float = Field(default=0.4, alias="OPENAI_TEMPERATURE")
    openai_max_tokens: int = Field(default=160, alias="OPENAI_MAX_TOKENS")

    data_dir: Path = Field(default=Path("./data"), alias="DATA_DIR")
    journal_dir: Path = Field(default=Path("./data/journal"), alias="JOURNAL_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    insights_max_print: int = Field(default=10, alias="INSIGHTS_MAX_PRINT")

    @field_validator("collect_interval_minutes", mode="before")
    @classmethod
    def normalize_interval(cls, value: Any) -> int:
        """Invalid intervals fall back to the default instead of failing startup."""
        return normalize_interval_minutes(value)

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as an absent credential."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}.")
        return normalized

    @model_validator(mode="after")
    def validate_limits(self) -> Settings:
        """Reject settings that would stall the collector or network calls."""
        if self.collector_tick_seconds <= 0:
            raise ValueError("COLLECTOR_TICK_SECONDS must be > 0.")
        if self.collector_max_workers <= 0:
            raise ValueError("COLLECTOR_MAX_WORKERS must be > 0.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.openai_timeout_seconds <= 0:
            raise ValueError("OPENAI_TIMEOUT_SECONDS must be > 0.")
        if self.openai_max_tokens <= 0:
            raise ValueError("OPENAI_MAX_TOKENS must be > 0.")
        if not self.openai_model.strip():
            raise ValueError("OPENAI_MODEL must not be empty.")
        if self.insights_max_print <= 0:
            raise ValueError("INSIGHTS_MAX_PRINT must be > 0.")
        return self

    @property
    def samples_path(self) -> Path:
        return self.data_dir / "samples.jsonl"

    @property
    def insights_path(self) -> Path:
        return self.data_dir / "insights.jsonl"

    @property
    def locations_path(self) -> Path:
        return self.data_dir / "locations.json"

    @property
    def collector_config_path(self) -> Path:
        return self.data_dir / "collector_config.json"

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for journaling (no credentials)."""
        return {
            "collect_interval_minutes": self.collect_interval_minutes,
            "collector_tick_seconds": self.collector_tick_seconds,
            "collector_max_workers": self.collector_max_workers,
            "open_meteo_base_url": self.open_meteo_base_url,
            "weather_timeout_seconds": self.weather_timeout_seconds,
            "openai_model": self.openai_model,
            "openai_base_url": self.openai_base_url,
            "openai_api_key_configured": self.openai_api_key is not None,
            "data_dir": str(self.data_dir),
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.journal_dir.mkdir(parents=True, exist_ok=True)
    return settings
