from __future__ import annotations

from typing import Callable

import httpx
import pytest

from neighborhood_matcher.cache.store import TTLCacheStore
from neighborhood_matcher.sources.config import SOURCE_IDS, SourceConfig

# No throttling or backoff in tests
FAST_SOURCES = SourceConfig(
    backoff_seconds=0.0,
    min_intervals={source_id: 0.0 for source_id in SOURCE_IDS},
)

NOMINATIM_OK = [
    {
        "lat": "19.0596",
        "lon": "72.8295",
        "display_name": "Bandra West, Mumbai, Maharashtra, India",
        "type": "suburb",
        "importance": 0.61,
    }
]

OVERPASS_OK = {
    "elements": [
        {"type": "node", "id": 1, "tags": {"amenity": "restaurant"}},
        {"type": "node", "id": 2, "tags": {"amenity": "restaurant"}},
        {"type": "node", "id": 3, "tags": {"amenity": "hospital"}},
        {"type": "node", "id": 4, "tags": {"amenity": "police"}},
        {"type": "node", "id": 5, "tags": {"leisure": "park"}},
        {"type": "node", "id": 6, "tags": {"shop": "bakery"}},
        {"type": "node", "id": 7, "tags": {"highway": "bus_stop"}},
        {"type": "way", "id": 8, "tags": {"highway": "footway"}},
        {"type": "node", "id": 9},
    ]
}

FORECAST_OK = {
    "current": {
        "temperature_2m": 31.2,
        "relative_humidity_2m": 70,
        "precipitation": 0.4,
        "weather_code": 3,
    }
}

AIR_QUALITY_OK = {"hourly": {"european_aqi": [None, 100, 80]}}

COUNTRIES_OK = [{"population": 1_380_004_385, "capital": ["New Delhi"], "region": "Asia"}]

DEFAULT_ROUTES: dict[str, object] = {
    "nominatim.openstreetmap.org": NOMINATIM_OK,
    "overpass-api.de": OVERPASS_OK,
    "api.open-meteo.com": FORECAST_OK,
    "air-quality-api.open-meteo.com": AIR_QUALITY_OK,
    "restcountries.com": COUNTRIES_OK,
}


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.advance(seconds)


class Upstream:
    """Routes requests by host; a route may be a payload, a status code, or an exception."""

    def __init__(self, routes: dict[str, object] | None = None) -> None:
        self.routes = dict(DEFAULT_ROUTES)
        self.routes.update(routes or {})
        self.calls: dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        self.calls[host] = self.calls.get(host, 0) + 1
        route = self.routes.get(host, 404)
        if isinstance(route, httpx.RequestError):
            raise type(route)(str(route), request=request)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return httpx.Response(route, json={"error": "upstream"})
        if isinstance(route, str):
            return httpx.Response(200, text=route)
        return httpx.Response(200, json=route)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def _all_failing() -> Upstream:
    error = httpx.ConnectError("connection refused")
    return Upstream({host: error for host in DEFAULT_ROUTES})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_store(tmp_path, clock) -> TTLCacheStore:
    return TTLCacheStore(tmp_path / "api-cache.json", clock=clock).open()


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def make_upstream() -> Callable[..., Upstream]:
    return Upstream


@pytest.fixture
def failing_upstream() -> Upstream:
    return _all_failing()


@pytest.fixture
def fast_sources() -> SourceConfig:
    return FAST_SOURCES
