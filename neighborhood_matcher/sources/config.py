from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

SOURCE_IDS = ("location", "poi", "weather", "demographics")


@dataclass(frozen=True)
class SourceConfig:
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    air_quality_url: str = "https://air-quality-api.open-meteo.com/v1/air-quality"
    countries_url: str = "https://restcountries.com/v3.1/name/India"
    user_agent: str = os.getenv("SOURCE_USER_AGENT", "neighborhood-matcher/1.0")
    timeout: float = float(os.getenv("SOURCE_TIMEOUT_SECONDS", 10.0))
    max_attempts: int = int(os.getenv("SOURCE_MAX_ATTEMPTS", 2))
    backoff_seconds: float = float(os.getenv("SOURCE_BACKOFF_SECONDS", 1.0))
    min_intervals: dict[str, float] = field(
        default_factory=lambda: {
            source_id: float(os.getenv("SOURCE_MIN_INTERVAL_SECONDS", 3.0))
            for source_id in SOURCE_IDS
        }
    )
    poi_radius: int = 2000


DEFAULT_SOURCE_CONFIG = SourceConfig()
