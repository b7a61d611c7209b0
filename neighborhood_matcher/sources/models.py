from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SourceTag(str, Enum):
    cache = "cache"
    api = "api"
    fallback = "fallback"
    error = "error"


class SourceResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: SourceTag
    error: str | None = None
    updated_at: str | None = None

    @property
    def succeeded(self) -> bool:
        """True when the data came from the upstream, directly or via cache."""
        return self.source in (SourceTag.api, SourceTag.cache)

    def cache_payload(self) -> dict:
        return self.model_dump(mode="json", exclude={"source", "error"})


class LocationResult(SourceResult):
    lat: float | None = None
    lon: float | None = None
    display_name: str | None = None
    place_type: str | None = None
    importance: float | None = None

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if self.succeeded and self.lat is not None and self.lon is not None:
            return self.lat, self.lon
        return None


class POIResult(SourceResult):
    restaurants: int | None = None
    hospitals: int | None = None
    parks: int | None = None
    shopping: int | None = None
    transport: int | None = None
    police: int | None = None
    footways: int | None = None
    total_pois: int | None = None


class WeatherResult(SourceResult):
    temperature: float | None = None
    humidity: float | None = None
    air_quality: float | None = None
    weather_description: str | None = None
    precipitation: float | None = None


class StatePopulation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    population: int


class DemographicsResult(SourceResult):
    total_population: int | None = None
    states: list[StatePopulation] = Field(default_factory=list)
    category: str | None = None
    capital: str | None = None
    region: str | None = None
