from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_HOUR = 3600


def _hours(name: str, default: float) -> float:
    return float(os.getenv(name, default)) * _HOUR


@dataclass(frozen=True)
class CacheConfig:
    path: Path = Path(os.getenv("CACHE_PATH", "cache/api-cache.json"))
    sweep_interval_seconds: float = float(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", 3600))
    # TTL class per data kind, in seconds
    ttl: dict[str, float] = field(
        default_factory=lambda: {
            "location": _hours("CACHE_TTL_LOCATION_HOURS", 24),
            "poi": _hours("CACHE_TTL_POI_HOURS", 48),
            "weather": _hours("CACHE_TTL_WEATHER_HOURS", 24),
            "demographics": _hours("CACHE_TTL_DEMOGRAPHICS_HOURS", 48),
            # Forecast cached without air quality; retried sooner
            "weather_partial": _hours("CACHE_TTL_WEATHER_PARTIAL_HOURS", 1),
        }
    )

    def ttl_for(self, kind: str) -> float:
        return self.ttl[kind]


DEFAULT_CACHE_CONFIG = CacheConfig()
