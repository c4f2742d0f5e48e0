"""Weather provider integrations."""

from .base import WeatherProvider
from .models import CurrentConditions
from .open_meteo import OpenMeteoWeatherProvider, pick_humidity, translate_weather_code

__all__ = [
    "CurrentConditions",
    "OpenMeteoWeatherProvider",
    "WeatherProvider",
    "pick_humidity",
    "translate_weather_code",
]
