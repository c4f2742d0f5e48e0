"""Open-Meteo (api.open-meteo.com) current-conditions provider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..exceptions import ProviderDataError, WeatherProviderError
from ..redaction import sanitize_text
from .base import WeatherProvider
from .models import CurrentConditions

UNDEFINED_CONDITION = "undefined"

WEATHER_CODE_LABELS: dict[int, str] = {
    0: "clear sky",
    1: "mainly clear",
    2: "partly cloudy",
    3: "overcast",
    45: "fog",
    48: "depositing rime fog",
    51: "light drizzle",
    53: "moderate drizzle",
    55: "dense drizzle",
    61: "slight rain",
    63: "moderate rain",
    65: "heavy rain",
    71: "slight snow",
    73: "moderate snow",
    75: "heavy snow",
    80: "slight rain showers",
    81: "moderate rain showers",
    82: "violent rain showers",
}


def translate_weather_code(code: Any) -> str:
    """Map a WMO weather code to a label; unknown codes map to 'undefined'."""
    if isinstance(code, bool) or not isinstance(code, (int, float)):
        return UNDEFINED_CONDITION
    if isinstance(code, float) and not code.is_integer():
        return UNDEFINED_CONDITION
    return WEATHER_CODE_LABELS.get(int(code), UNDEFINED_CONDITION)


def pick_humidity(hourly: Any, current_time: str | None) -> float | None:
    """Pick the hourly humidity aligned with the current-conditions timestamp.

    Falls back to the first hourly value when the timestamp has no exact
    match, and to None when the series is empty or missing.
    """
    if not isinstance(hourly, dict):
        return None
    timestamps = hourly.get("time")
    values = hourly.get("relativehumidity_2m")
    if not isinstance(timestamps, list) or not isinstance(values, list):
        return None
    if not timestamps or not values:
        return None

    if current_time:
        try:
            index = timestamps.index(current_time)
        except ValueError:
            index = -1
        if 0 <= index < len(values) and _as_float(values[index]) is not None:
            return _as_float(values[index])
    return _as_float(values[0])


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


class OpenMeteoWeatherProvider(WeatherProvider):
    """Fetches current weather and hourly humidity from Open-Meteo."""

    provider_name = "open-meteo"

    def __init__(self, settings: Settings, logger: logging.Logger) -> None:
        self.settings = settings
        self.logger = logger
        self._base_url = settings.open_meteo_base_url
        self._client = httpx.Client(
            timeout=settings.weather_timeout_seconds,
            headers={"Cache-Control": "no-cache"},
        )

    def __enter__(self) -> OpenMeteoWeatherProvider:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch_current(self, lat: float, lon: float) -> CurrentConditions:
        """Fetch current conditions; raises ProviderDataError without a temperature."""
        if not (-90 <= lat <= 90):
            raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
        if not (-180 <= lon <= 180):
            raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")

        params = {
            "latitude": lat,
            "longitude": lon,
            "current_weather": "true",
            "hourly": "relativehumidity_2m",
            "timezone": "UTC",
        }
        payload = self._request_json(params, context="current weather fetch")
        return self.normalize_payload(payload)

    def normalize_payload(self, payload: dict[str, Any]) -> CurrentConditions:
        """Extract the typed fields from a forecast response."""
        current = payload.get("current_weather")
        if not isinstance(current, dict):
            current = {}
        temperature = _as_float(current.get("temperature"))
        if temperature is None:
            raise ProviderDataError("Open-Meteo response is missing current temperature.")

        observed_time = current.get("time") if isinstance(current.get("time"), str) else None
        code = current.get("weathercode")
        return CurrentConditions(
            temperature_c=temperature,
            humidity_percent=pick_humidity(payload.get("hourly"), observed_time),
            wind_speed_kmh=_as_float(current.get("windspeed")),
            condition_code=int(code) if _as_float(code) is not None else None,
            condition=translate_weather_code(code),
            observed_time=observed_time,
            raw=current,
        )

    def _request_json(self, params: dict[str, Any], context: str) -> dict[str, Any]:
        try:
            response = self._client.get(self._base_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise WeatherProviderError(
                f"Open-Meteo {context} failed with status {status}: "
                f"{sanitize_text(exc.response.text[:300])}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise WeatherProviderError(f"Open-Meteo {context} timed out.") from exc
        except httpx.HTTPError as exc:
            raise WeatherProviderError(
                f"Open-Meteo {context} request failed: {sanitize_text(str(exc))}"
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise WeatherProviderError(f"Open-Meteo {context} returned non-JSON response.") from exc

        if not isinstance(payload, dict):
            raise WeatherProviderError(
                f"Open-Meteo {context} returned unexpected payload type "
                f"{type(payload).__name__}."
            )
        return payload
