from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from ..sources.config import DEFAULT_SOURCE_CONFIG, SourceConfig

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def default_deadline(pool_cap: int, sources: SourceConfig = DEFAULT_SOURCE_CONFIG) -> float:
    """
    Enough time to drain a cold-cache pool through the rate limiter.

    Each candidate queues one geocode and two weather calls (forecast and air
    quality) behind the slowest per-source interval, plus one full retry of
    the last request.
    """
    if os.getenv("MATCH_DEADLINE_SECONDS"):
        return float(os.environ["MATCH_DEADLINE_SECONDS"])
    interval = max(sources.min_intervals.values(), default=0.0)
    return 3 * pool_cap * interval + sources.max_attempts * sources.timeout


_POOL_CAP = int(os.getenv("MATCH_POOL_CAP", 20))


@dataclass(frozen=True)
class MatchingConfig:
    # Upper bound on candidates enriched per request (and on concurrent enrichments)
    pool_cap: int = _POOL_CAP
    # Wall-clock budget for enriching one request's pool
    deadline_seconds: float = default_deadline(_POOL_CAP)
    shuffle: bool = _flag("MATCH_SHUFFLE", "true")
    realtime_results: int = 10
    static_results: int = 5
    # Used when neither the geocoder nor the catalog knows a candidate's position
    default_coordinates: tuple[float, float] = (19.0760, 72.8777)
    catalog_path: Path = Path(
        os.getenv(
            "CATALOG_PATH",
            str(Path(__file__).resolve().parent.parent / "data" / "neighborhoods.json"),
        )
    )


DEFAULT_MATCHING_CONFIG = MatchingConfig()
