"""Provider-agnostic weather interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import CurrentConditions


class WeatherProvider(ABC):
    """Base contract for providers used by the collection scheduler."""

    provider_name: str = "unknown"

    @abstractmethod
    def fetch_current(self, lat: float, lon: float) -> CurrentConditions:
        """Fetch and normalize current conditions for a coordinate pair."""

    @abstractmethod
    def close(self) -> None:
        """Release provider resources."""
