"""
Rebuild a neighborhood catalog from a persisted API cache file.

Usage:
    python -m neighborhood_matcher.catalog.from_cache [cache.json] [output.json]
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import ValidationError

from ..cache.config import DEFAULT_CACHE_CONFIG
from ..features.derive import derive_features
from ..sources.config import DEFAULT_SOURCE_CONFIG
from ..sources.models import LocationResult, POIResult, SourceTag, WeatherResult
from ..sources.poi import POIAdapter
from ..sources.weather import WeatherAdapter

logger = logging.getLogger(__name__)

_LOCATION_PREFIX = "location_"


def _data(cache: dict[str, Any], key: str) -> dict[str, Any] | None:
    entry = cache.get(key)
    if not isinstance(entry, dict):
        return None
    data = entry.get("data", entry)
    return data if isinstance(data, dict) else None


def _record(model: type, data: dict[str, Any] | None):
    if data is None:
        return None
    try:
        return model(**data, source=SourceTag.cache)
    except (TypeError, ValidationError):
        return None


def extract_neighborhoods(cache: dict[str, Any], radius: int = DEFAULT_SOURCE_CONFIG.poi_radius) -> list[dict[str, Any]]:
    rows: dict[str, dict[str, Any]] = {}
    for key in cache:
        if not key.startswith(_LOCATION_PREFIX):
            continue
        name_part, _, city_part = key[len(_LOCATION_PREFIX):].rpartition("_")
        if not name_part or not city_part:
            continue
        name, city = name_part.title(), city_part.title()
        location = _record(LocationResult, _data(cache, key))
        coords = location.coordinates if location else None

        row: dict[str, Any] = {
            "id": f"{name.lower()}|{city.lower()}",
            "name": name,
            "city": city,
            "lat": coords[0] if coords else None,
            "lon": coords[1] if coords else None,
            "displayName": location.display_name if location else None,
        }
        if coords:
            lat, lon = coords
            poi = _record(POIResult, _data(cache, POIAdapter.cache_key(lat, lon, radius)))
            weather = _record(WeatherResult, _data(cache, WeatherAdapter.cache_key(lat, lon)))
            features, _ = derive_features(location, poi, weather, None)
            row.update(features.model_dump(by_alias=True))
        rows[row["id"]] = row
    return list(rows.values())


def run_rebuild(
    cache_path: Path = DEFAULT_CACHE_CONFIG.path,
    output_path: Path = Path("neighborhood_matcher/data/neighborhoods_from_cache.json"),
) -> Path:
    if not cache_path.is_file():
        raise FileNotFoundError(f"cache file not found: {cache_path}")
    cache = json.loads(cache_path.read_text(encoding="utf-8"))
    rows = extract_neighborhoods(cache)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows).to_json(output_path, orient="records", indent=2)
    logger.info("Extracted %d neighborhoods to %s", len(rows), output_path)
    return output_path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    args = [Path(a) for a in sys.argv[1:3]]
    path = run_rebuild(*args)
    print(f"Rebuild complete. Catalog saved to: {path}")
