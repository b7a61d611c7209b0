from __future__ import annotations

import logging
from typing import Any

from .base import SourceAdapter, utc_now_iso
from .http import UpstreamError
from .models import SourceTag, WeatherResult

logger = logging.getLogger(__name__)

# WMO weather interpretation codes (subset reported by Open-Meteo)
WEATHER_CODES: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    95: "Thunderstorm",
}


def describe_weather(code: int | None) -> str:
    return WEATHER_CODES.get(code, "Partly cloudy") if code is not None else "Partly cloudy"


def _first(values: Any) -> float | None:
    if isinstance(values, list):
        for value in values:
            if value is not None:
                return float(value)
    return None


class WeatherAdapter(SourceAdapter[WeatherResult]):
    """Current weather and air quality from Open-Meteo."""

    source_id = "weather"
    result_type = WeatherResult

    def fallback(self, reason: str) -> WeatherResult:
        return WeatherResult(
            source=SourceTag.fallback,
            temperature=25.0,
            humidity=60.0,
            air_quality=50.0,
            weather_description="Partly cloudy",
            precipitation=0.0,
            updated_at=utc_now_iso(),
        )

    def ttl_for(self, result: WeatherResult) -> float:
        if result.air_quality is None:
            return self.cache_config.ttl_for("weather_partial")
        return self.ttl

    @staticmethod
    def cache_key(lat: float, lon: float) -> str:
        return f"weather_{lat}_{lon}"

    @staticmethod
    def _normalize(payload: Any) -> WeatherResult:
        forecast, air = payload
        if not isinstance(forecast, dict) or not isinstance(forecast.get("current"), dict):
            raise ValueError("forecast payload has no 'current' block")
        current = forecast["current"]
        hourly = (air or {}).get("hourly") or {}
        return WeatherResult(
            source=SourceTag.api,
            temperature=current.get("temperature_2m"),
            humidity=current.get("relative_humidity_2m"),
            precipitation=current.get("precipitation"),
            weather_description=describe_weather(current.get("weather_code")),
            air_quality=_first(hourly.get("european_aqi")),
            updated_at=utc_now_iso(),
        )

    async def _fetch_air_quality(self, lat: float, lon: float) -> dict | None:
        params = {"latitude": lat, "longitude": lon, "hourly": "european_aqi"}
        try:
            air = await self._call("GET", self.config.air_quality_url, params=params)
        except UpstreamError:
            logger.warning("Air quality data unavailable for lat=%s, lon=%s", lat, lon)
            return None
        return air if isinstance(air, dict) else None

    async def fetch_weather(self, lat: float, lon: float) -> WeatherResult:
        logger.info("Fetching weather for lat=%s, lon=%s", lat, lon)
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": "temperature_2m,relative_humidity_2m,apparent_temperature,precipitation,weather_code",
            "timezone": "auto",
            "forecast_days": 1,
        }

        async def fetch() -> tuple[Any, dict | None]:
            forecast = await self._call("GET", self.config.forecast_url, params=params)
            return forecast, await self._fetch_air_quality(lat, lon)

        return await self._resolve(self.cache_key(lat, lon), fetch, self._normalize)
