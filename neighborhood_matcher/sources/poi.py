from __future__ import annotations

import logging
from typing import Any

from .base import SourceAdapter, utc_now_iso
from .models import POIResult, SourceTag

logger = logging.getLogger(__name__)

_OVERPASS_QUERY = """
[out:json][timeout:25];
(
  node["amenity"="restaurant"](around:{radius},{lat},{lon});
  node["amenity"="hospital"](around:{radius},{lat},{lon});
  node["amenity"="police"](around:{radius},{lat},{lon});
  node["leisure"="park"](around:{radius},{lat},{lon});
  node["shop"](around:{radius},{lat},{lon});
  node["highway"="bus_stop"](around:{radius},{lat},{lon});
  way["highway"="footway"](around:{radius},{lat},{lon});
);
out tags;
"""


def _count(elements: list[dict], key: str, value: str | None = None) -> int:
    total = 0
    for element in elements:
        tags = element.get("tags") or {}
        if value is None and key in tags:
            total += 1
        elif value is not None and tags.get(key) == value:
            total += 1
    return total


class POIAdapter(SourceAdapter[POIResult]):
    """Counts amenities around a point through the Overpass API."""

    source_id = "poi"
    result_type = POIResult

    def fallback(self, reason: str) -> POIResult:
        return POIResult(source=SourceTag.error, error="POI data unavailable")

    @staticmethod
    def cache_key(lat: float, lon: float, radius: int) -> str:
        return f"poi_{lat}_{lon}_{radius}"

    @staticmethod
    def _normalize(payload: Any) -> POIResult:
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object")
        elements = [e for e in payload.get("elements") or [] if isinstance(e, dict)]
        return POIResult(
            source=SourceTag.api,
            restaurants=_count(elements, "amenity", "restaurant"),
            hospitals=_count(elements, "amenity", "hospital"),
            police=_count(elements, "amenity", "police"),
            parks=_count(elements, "leisure", "park"),
            shopping=_count(elements, "shop"),
            transport=_count(elements, "highway", "bus_stop"),
            footways=_count(elements, "highway", "footway"),
            total_pois=len(elements),
            updated_at=utc_now_iso(),
        )

    async def fetch_poi(self, lat: float, lon: float, radius: int | None = None) -> POIResult:
        radius = radius or self.config.poi_radius
        logger.info("Fetching POIs for lat=%s, lon=%s, radius=%s", lat, lon, radius)
        query = _OVERPASS_QUERY.format(radius=radius, lat=lat, lon=lon)
        return await self._resolve(
            self.cache_key(lat, lon, radius),
            lambda: self._call(
                "POST",
                self.config.overpass_url,
                data={"data": query},
            ),
            self._normalize,
        )
