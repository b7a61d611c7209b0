from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, TypeVar

import httpx
from pydantic import ValidationError

from ..cache.config import DEFAULT_CACHE_CONFIG, CacheConfig
from ..cache.store import TTLCacheStore
from .config import DEFAULT_SOURCE_CONFIG, SourceConfig
from .http import UpstreamError, fetch_json
from .models import SourceResult, SourceTag
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=SourceResult)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SourceAdapter(Generic[R]):
    """
    Cache-first, rate-limited access to one upstream source.

    Subclasses set ``source_id``/``result_type`` and implement ``fallback``;
    their public ``fetch_*`` method builds a cache key, a fetch coroutine and
    a normalizer, and hands them to ``_resolve``.
    """

    source_id: str
    result_type: type[R]

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCacheStore,
        limiter: RateLimiter,
        config: SourceConfig = DEFAULT_SOURCE_CONFIG,
        cache_config: CacheConfig = DEFAULT_CACHE_CONFIG,
    ) -> None:
        self.client = client
        self.cache = cache
        self.limiter = limiter
        self.config = config
        self.cache_config = cache_config
        self.ttl = cache_config.ttl_for(self.source_id)

    def fallback(self, reason: str) -> R:
        raise NotImplementedError

    def ttl_for(self, result: R) -> float:
        return self.ttl

    async def _call(self, method: str, url: str, **kwargs: Any) -> Any:
        """One rate-limited upstream request (retries happen inside the slot)."""
        return await self.limiter.schedule(
            self.source_id,
            lambda: fetch_json(
                self.client,
                self.source_id,
                method,
                url,
                attempts=self.config.max_attempts,
                timeout=self.config.timeout,
                backoff=self.config.backoff_seconds,
                **kwargs,
            ),
        )

    def _from_cache(self, key: str) -> R | None:
        cached = self.cache.get(key)
        if cached is None:
            return None
        try:
            return self.result_type(**cached, source=SourceTag.cache)
        except (TypeError, ValidationError):
            logger.warning("Ignoring unreadable cache entry %s", key)
            return None

    async def _resolve(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        normalize: Callable[[Any], R],
    ) -> R:
        cached = self._from_cache(key)
        if cached is not None:
            return cached

        try:
            payload = await fetch()
            result = normalize(payload)
        except UpstreamError as e:
            logger.warning("%s unavailable, using fallback: %s", self.source_id, e)
            return self.fallback(f"{self.source_id} data unavailable")
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("%s returned a malformed payload, using fallback: %s", self.source_id, e)
            return self.fallback(f"{self.source_id} data unavailable")

        if result.source is SourceTag.api:
            await self.cache.set(key, result.cache_payload(), self.ttl_for(result))
        return result
