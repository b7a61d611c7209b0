from __future__ import annotations

import asyncio
import logging
from typing import Awaitable

from ..features.derive import derive_features
from ..sources.demographics import DemographicsAdapter
from ..sources.location import LocationAdapter
from ..sources.models import SourceResult, SourceTag
from ..sources.poi import POIAdapter
from ..sources.weather import WeatherAdapter
from .config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from .models import EnrichedNeighborhood, Neighborhood

logger = logging.getLogger(__name__)

SOURCE_ORDER = ("location", "poi", "weather", "demographics")
TOTAL_SOURCES = len(SOURCE_ORDER)


def data_quality(results: dict[str, SourceResult]) -> float:
    """Share of sources (0-100) that returned a usable record, fallbacks included."""
    available = sum(1 for r in results.values() if r.source is not SourceTag.error)
    return available / TOTAL_SOURCES * 100


class NeighborhoodEnricher:
    """Builds one candidate's feature vector from the four upstream sources."""

    def __init__(
        self,
        location: LocationAdapter,
        poi: POIAdapter,
        weather: WeatherAdapter,
        demographics: DemographicsAdapter,
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
    ) -> None:
        self.location = location
        self.poi = poi
        self.weather = weather
        self.demographics = demographics
        self.config = config

    def _adapter(self, name: str):
        return getattr(self, name)

    async def enrich(
        self,
        neighborhood: Neighborhood,
        results: dict[str, SourceResult] | None = None,
    ) -> EnrichedNeighborhood:
        """
        Fetch all four sources and derive the candidate's features.

        Each source result is written into *results* as soon as it arrives, so
        a caller that gives up early can still ``assemble`` what finished.
        """
        if results is None:
            results = {}

        async def _into(name: str, fetch: Awaitable[SourceResult]) -> None:
            results[name] = await fetch

        await _into("location", self.location.fetch_location(neighborhood.name, neighborhood.city))
        coords = results["location"].coordinates or neighborhood.coordinates
        if coords is None:
            logger.info(
                "No coordinates for %s, %s; using default position", neighborhood.name, neighborhood.city
            )
            coords = self.config.default_coordinates
        lat, lon = coords

        await asyncio.gather(
            _into("poi", self.poi.fetch_poi(lat, lon)),
            _into("weather", self.weather.fetch_weather(lat, lon)),
            _into("demographics", self.demographics.fetch_demographics("demographics")),
        )
        return self.assemble(neighborhood, results)

    def assemble(
        self,
        neighborhood: Neighborhood,
        results: dict[str, SourceResult],
        reason: str | None = None,
    ) -> EnrichedNeighborhood:
        """
        Derive features from whichever source results are present.

        Missing sources are filled with their adapter's fallback record and
        tagged ``<source>:<reason>``; quality only counts results that arrived.
        """
        quality = data_quality(results)
        complete: dict[str, SourceResult] = {}
        tags: list[str] = []
        for name in SOURCE_ORDER:
            result = results.get(name)
            if result is None:
                result = self._adapter(name).fallback(f"{name} {reason or 'missing'}")
                tags.append(f"{name}:{reason or 'missing'}")
            else:
                tags.append(f"{name}:{result.source.value}")
            complete[name] = result

        features, used_defaults = derive_features(
            complete["location"], complete["poi"], complete["weather"], complete["demographics"]
        )
        if used_defaults:
            logger.warning("Enrichment for %s used defaults only", neighborhood.name)

        return EnrichedNeighborhood(
            neighborhood=neighborhood,
            features=features,
            used_defaults=used_defaults,
            data_sources=tags,
            data_quality=quality,
        )
