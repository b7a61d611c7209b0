from __future__ import annotations

from dataclasses import dataclass

import httpx

from .cache.config import DEFAULT_CACHE_CONFIG, CacheConfig
from .cache.store import TTLCacheStore
from .cache.sweeper import CacheSweeper
from .matching.config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from .matching.enrichment import NeighborhoodEnricher
from .sources.config import DEFAULT_SOURCE_CONFIG, SourceConfig
from .sources.demographics import DemographicsAdapter
from .sources.http import create_client
from .sources.location import LocationAdapter
from .sources.poi import POIAdapter
from .sources.rate_limiter import RateLimiter
from .sources.weather import WeatherAdapter


@dataclass
class Services:
    """Process-wide collaborators shared by every request."""

    cache: TTLCacheStore
    limiter: RateLimiter
    client: httpx.AsyncClient
    enricher: NeighborhoodEnricher
    sweeper: CacheSweeper

    async def aclose(self) -> None:
        await self.sweeper.stop()
        await self.cache.close()
        await self.client.aclose()


def build_services(
    cache_config: CacheConfig = DEFAULT_CACHE_CONFIG,
    source_config: SourceConfig = DEFAULT_SOURCE_CONFIG,
    matching_config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
    client: httpx.AsyncClient | None = None,
    cache: TTLCacheStore | None = None,
) -> Services:
    cache = cache or TTLCacheStore(cache_config.path).open()
    limiter = RateLimiter(source_config.min_intervals)
    client = client or create_client(source_config.user_agent, source_config.timeout)
    adapter_args = (client, cache, limiter, source_config, cache_config)
    enricher = NeighborhoodEnricher(
        LocationAdapter(*adapter_args),
        POIAdapter(*adapter_args),
        WeatherAdapter(*adapter_args),
        DemographicsAdapter(*adapter_args),
        config=matching_config,
    )
    return Services(
        cache=cache,
        limiter=limiter,
        client=client,
        enricher=enricher,
        sweeper=CacheSweeper(cache, cache_config.sweep_interval_seconds),
    )
