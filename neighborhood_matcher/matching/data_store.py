from __future__ import annotations

from pathlib import Path

import pandas as pd

from .config import DEFAULT_MATCHING_CONFIG
from .models import EnrichedNeighborhood, Neighborhood

_NUMERIC_COLUMNS = [
    "lat",
    "lon",
    "safety",
    "walkability",
    "healthcare",
    "fastInternet",
    "affordability",
    "restaurants",
    "publicTransport",
    "parksGreenery",
    "airQuality",
]

_catalog: list[Neighborhood] | None = None


def load_catalog(path: Path) -> list[Neighborhood]:
    df = pd.read_json(path, orient="records", dtype=False)
    if df.empty:
        return []

    for col in _NUMERIC_COLUMNS:
        if col not in df.columns:
            df[col] = None
        df[col] = pd.to_numeric(df[col], errors="coerce")

    # Catalog files built from OSM carry no id; derive a stable one
    if "id" not in df.columns:
        df["id"] = None
    df["id"] = df["id"].where(df["id"].notna(), df["name"].str.lower() + "|" + df["city"].str.lower())
    df["id"] = df["id"].astype(str)

    df = df.dropna(subset=["name", "city"])
    df = df.astype(object).where(df.notna(), None)
    return [Neighborhood.model_validate(row) for row in df.to_dict(orient="records")]


def get_catalog() -> list[Neighborhood]:
    """Return the in-memory neighborhood catalog, loading it on first call."""
    global _catalog
    if _catalog is None:
        _catalog = load_catalog(DEFAULT_MATCHING_CONFIG.catalog_path)
    return _catalog


def reset_catalog() -> None:
    global _catalog
    _catalog = None


def filter_by_city(pool: list[Neighborhood], city: str | None) -> list[Neighborhood]:
    if not city:
        return pool
    city_lower = city.strip().lower()
    return [n for n in pool if n.city.lower() == city_lower]


def find_neighborhood(neighborhood_id: str) -> Neighborhood | None:
    return next((n for n in get_catalog() if n.id == neighborhood_id), None)


def apply_enrichment(enriched: list[EnrichedNeighborhood]) -> list[Neighborhood]:
    """
    Write enriched features back into the in-memory catalog.

    Candidates built from defaults only keep their catalog attributes.
    Returns the neighborhoods as they now stand in the catalog.
    """
    global _catalog
    catalog = get_catalog()
    updated: dict[str, Neighborhood] = {}
    for item in enriched:
        if item.used_defaults:
            updated[item.neighborhood.id] = item.neighborhood
            continue
        updated[item.neighborhood.id] = item.neighborhood.model_copy(update=item.features.model_dump())
    _catalog = [updated.get(n.id, n) for n in catalog]
    return [updated[item.neighborhood.id] for item in enriched]
