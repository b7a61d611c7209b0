from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List

import httpx
import pandas as pd

from .config import DEFAULT_INGESTION_CONFIG, City, IngestionConfig

logger = logging.getLogger(__name__)

CATALOG_COLUMNS: List[str] = ["id", "name", "city", "lat", "lon", "osmType", "osmId"]

_PLACES_QUERY = """
[out:json][timeout:60];
(
  node["place"~"suburb|neighbourhood|locality"](around:{radius},{lat},{lon});
  way["place"~"suburb|neighbourhood|locality"](around:{radius},{lat},{lon});
  relation["place"~"suburb|neighbourhood|locality"](around:{radius},{lat},{lon});
);
out center;
"""


def _element_to_row(element: dict[str, Any], city: str) -> dict[str, Any] | None:
    tags = element.get("tags") or {}
    name = tags.get("name") or tags.get("name:en")
    if not name:
        return None
    center = element.get("center") or {}
    return {
        "name": name,
        "city": city,
        "lat": element.get("lat", center.get("lat")),
        "lon": element.get("lon", center.get("lon")),
        "osmType": element.get("type"),
        "osmId": element.get("id"),
    }


def fetch_city_places(client: httpx.Client, city: City, config: IngestionConfig) -> list[dict[str, Any]]:
    query = _PLACES_QUERY.format(radius=config.radius_meters, lat=city.lat, lon=city.lon)
    response = client.post(config.overpass_url, data={"data": query})
    response.raise_for_status()
    elements = response.json().get("elements") or []
    rows = [_element_to_row(el, city.name) for el in elements]
    return [r for r in rows if r is not None]


def build_catalog(rows: list[dict[str, Any]]) -> pd.DataFrame:
    """Deduplicate on ``name|city`` (case-insensitive) and assign ids."""
    if not rows:
        return pd.DataFrame(columns=CATALOG_COLUMNS)
    df = pd.DataFrame(rows)
    df["id"] = df["name"].str.lower() + "|" + df["city"].str.lower()
    df = df.drop_duplicates(subset="id", keep="first").reset_index(drop=True)
    return df[CATALOG_COLUMNS]


def run_ingestion(
    config: IngestionConfig = DEFAULT_INGESTION_CONFIG,
    client: httpx.Client | None = None,
) -> Path:
    """
    Execute the catalog ingestion pipeline.

    Steps:
    - Query Overpass for suburbs/neighbourhoods/localities around each city.
    - Deduplicate by name and city.
    - Persist the catalog as JSON records.

    A city whose query fails is logged and skipped.
    """
    config.output_dir.mkdir(parents=True, exist_ok=True)

    owns_client = client is None
    client = client or httpx.Client(timeout=config.timeout)
    rows: list[dict[str, Any]] = []
    try:
        for city in config.cities:
            try:
                city_rows = fetch_city_places(client, city, config)
            except (httpx.HTTPError, ValueError):
                logger.warning("Overpass API failed for %s", city.name, exc_info=True)
                continue
            logger.info("%s: loaded %d neighborhoods from OSM", city.name, len(city_rows))
            rows.extend(city_rows)
    finally:
        if owns_client:
            client.close()

    catalog = build_catalog(rows)
    output_path = config.output_path
    catalog.to_json(output_path, orient="records", indent=2)
    logger.info("Loaded %d unique neighborhoods", len(catalog))
    return output_path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    path = run_ingestion()
    print(f"Ingestion complete. Catalog saved to: {path}")
