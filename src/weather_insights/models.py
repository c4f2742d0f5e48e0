"""Shared typed models for locations, samples and insight records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from .config import parse_interval_minutes

Trend = Literal["rising", "falling", "stable"]


def utc_now() -> datetime:
    return datetime.now(UTC)


class Location(BaseModel):
    """Monitored point supplied by the location directory."""

    id: str
    name: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    interval_minutes: int | None = Field(
        default=None, description="Per-location interval override in minutes"
    )
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("interval_minutes", mode="before")
    @classmethod
    def drop_invalid_interval(cls, value: Any) -> int | None:
        """Unusable overrides are stored as absent so the global interval applies."""
        return parse_interval_minutes(value)


class Sample(BaseModel):
    """One collected weather reading. Immutable once written."""

    model_config = {"frozen": True}

    source: str
    city: str
    latitude: float
    longitude: float
    collected_at: datetime
    temperature_c: float
    humidity_percent: float | None = None
    wind_speed_kmh: float | None = None
    condition: str | None = None
    raw: dict[str, Any] = Field(
        default_factory=dict, description="Provider payload stored verbatim"
    )
    location_id: str | None = None


class CityInsight(BaseModel):
    """Per-city statistics derived from a window of samples."""

    model_config = {"frozen": True}

    city: str
    sample_count: int
    average_temperature: float
    average_humidity: float
    humidity_sample_count: int = 0
    trend: Trend
    comfort_index: int | None = None
    alerts: list[str] = Field(default_factory=list)
    last_sample: Sample
    narrative: str


class ComfortRankingEntry(BaseModel):
    """Entry of the top-3 comfort ranking."""

    city: str
    comfort_index: int
    narrative: str


class InsightRecord(BaseModel):
    """Aggregation output persisted after each insight run."""

    created_at: datetime = Field(default_factory=utc_now)
    window_hours: int
    samples: int
    message: str
    comfort_ranking: list[ComfortRankingEntry] = Field(default_factory=list)
    cities: list[CityInsight] = Field(default_factory=list)
    model: str | None = None
    narrative: str | None = None


class SamplePage(BaseModel):
    """Paged slice of stored samples, newest first."""

    items: list[Sample]
    total: int
    page: int
    limit: int
    total_pages: int


class LocationPage(BaseModel):
    """Paged slice of directory locations, newest first."""

    items: list[Location]
    total: int
    page: int
    limit: int
    total_pages: int


class CollectorConfig(BaseModel):
    """Persisted global collector configuration."""

    collect_interval_minutes: int
    updated_at: datetime = Field(default_factory=utc_now)


class CycleReport(BaseModel):
    """Outcome of one collection cycle, or of a skipped tick."""

    started_at: datetime
    status: Literal["completed", "not_due", "no_locations", "busy", "failed"]
    interval_minutes: int
    location_count: int = 0
    succeeded: int = 0
    failed: int = 0
    error: str | None = None
