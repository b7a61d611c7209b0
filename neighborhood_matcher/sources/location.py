from __future__ import annotations

import logging
from typing import Any

from .base import SourceAdapter, utc_now_iso
from .models import LocationResult, SourceTag

logger = logging.getLogger(__name__)


class LocationAdapter(SourceAdapter[LocationResult]):
    """Geocodes a neighborhood through Nominatim (OpenStreetMap)."""

    source_id = "location"
    result_type = LocationResult

    def fallback(self, reason: str) -> LocationResult:
        # No synthetic coordinate is meaningful, so failures are error-tagged.
        return LocationResult(source=SourceTag.error, error="Location data unavailable")

    @staticmethod
    def cache_key(name: str, city: str) -> str:
        return f"location_{name.lower()}_{city.lower()}"

    @staticmethod
    def _normalize(payload: Any) -> LocationResult:
        if not isinstance(payload, list):
            raise ValueError("expected a JSON array of places")
        if not payload:
            return LocationResult(source=SourceTag.error, error="Location not found")
        place = payload[0]
        return LocationResult(
            source=SourceTag.api,
            lat=float(place["lat"]),
            lon=float(place["lon"]),
            display_name=place.get("display_name"),
            place_type=place.get("type"),
            importance=place.get("importance"),
            updated_at=utc_now_iso(),
        )

    async def fetch_location(self, name: str, city: str) -> LocationResult:
        logger.info("Fetching location for %s, %s", name, city)
        params = {
            "q": f"{name}, {city}, India",
            "format": "json",
            "limit": 1,
            "addressdetails": 1,
        }
        return await self._resolve(
            self.cache_key(name, city),
            lambda: self._call("GET", self.config.nominatim_url, params=params),
            self._normalize,
        )
