"""Typed model for normalized current-conditions snapshots."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CurrentConditions(BaseModel):
    """Current conditions extracted from a provider response."""

    temperature_c: float
    humidity_percent: float | None = None
    wind_speed_kmh: float | None = None
    condition_code: int | None = None
    condition: str
    observed_time: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)
