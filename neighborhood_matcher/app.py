from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException
from pydantic.alias_generators import to_camel

from .matching.config import DEFAULT_MATCHING_CONFIG
from .matching.data_store import apply_enrichment, filter_by_city, find_neighborhood, get_catalog
from .matching.models import (
    DataQualitySummary,
    EnrichedNeighborhood,
    MatchRequest,
    MatchResponse,
    NeighborhoodListResponse,
    QualityDetail,
    RealtimeNeighborhoodsResponse,
    RefreshRequest,
    RefreshResponse,
)
from .matching.orchestrator import enrich_pool, match
from .ranking.ranker import FACTOR_WEIGHTS
from .services import Services, build_services

logger = logging.getLogger(__name__)

_services: Services | None = None


def get_services() -> Services:
    """Return the process-wide services, creating them on first use."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    services = get_services()
    services.sweeper.start()
    logger.info("Neighborhood matcher started with %d cached entries", len(services.cache))
    try:
        yield
    finally:
        global _services
        await services.aclose()
        _services = None


app = FastAPI(title="Neighborhood Matching API", version="2.0.0", lifespan=lifespan)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _quality_summary(enriched: list[EnrichedNeighborhood]) -> DataQualitySummary:
    details = [
        QualityDetail(name=e.neighborhood.name, quality=e.data_quality or 0.0, sources=e.data_sources)
        for e in enriched
    ]
    average = sum(d.quality for d in details) / len(details) if details else 0.0
    return DataQualitySummary(average=round(average, 1), details=details)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {
        "message": "Welcome to the Neighborhood Matching API",
        "version": app.version,
        "algorithm": "weighted-cosine-similarity",
        "endpoints": {
            "/": "GET - API information",
            "/match": "POST - Find neighborhood matches for your preferences",
            "/neighborhoods": "GET - All catalog neighborhoods",
            "/neighborhoods/realtime": "GET - Catalog neighborhoods enriched with live data",
            "/api/refresh": "POST - Refresh one neighborhood (neighborhoodId) or all from live data",
            "/api/status": "GET - Cache status",
            "/api/cache/sweep": "POST - Remove expired cache entries",
        },
    }


@app.get("/neighborhoods", response_model=NeighborhoodListResponse)
def neighborhoods() -> NeighborhoodListResponse:
    catalog = get_catalog()
    return NeighborhoodListResponse(neighborhoods=catalog, total_count=len(catalog))


@app.get("/neighborhoods/realtime", response_model=RealtimeNeighborhoodsResponse)
async def realtime_neighborhoods(
    city: str | None = None,
    services: Services = Depends(get_services),
) -> RealtimeNeighborhoodsResponse:
    pool = filter_by_city(get_catalog(), city)
    logger.info("Fetching real-time data for %d neighborhoods", len(pool))
    enriched = await enrich_pool(pool, services.enricher, DEFAULT_MATCHING_CONFIG)
    return RealtimeNeighborhoodsResponse(
        neighborhoods=enriched,
        total_count=len(enriched),
        last_updated=_now_iso(),
        data_quality=_quality_summary(enriched),
    )


@app.post("/match", response_model=MatchResponse)
async def match_neighborhoods(
    body: MatchRequest,
    services: Services = Depends(get_services),
) -> MatchResponse:
    realtime = body.use_real_time_data
    pool = filter_by_city(get_catalog(), body.city)
    config = DEFAULT_MATCHING_CONFIG
    result_count = body.limit or (config.realtime_results if realtime else config.static_results)

    outcome = await match(
        body.user_prefs,
        pool,
        result_count,
        enrich=realtime,
        enricher=services.enricher,
        config=config,
    )

    return MatchResponse(
        user_preferences=body.user_prefs,
        top_matches=outcome.results,
        total_neighborhoods=outcome.total_candidates,
        data_source="realtime" if realtime else "static",
        weights={to_camel(k): v for k, v in outcome.weights.items()},
        enrichment_warning=outcome.enrichment_warning,
        last_updated=_now_iso(),
    )


# ── Cache endpoints ──────────────────────────────────────────────────────


@app.get("/api/status")
def api_status(services: Services = Depends(get_services)) -> dict:
    return {
        "status": "operational",
        "timestamp": _now_iso(),
        "cache": services.cache.status(),
        "cacheStats": services.cache.stats(),
        "neighborhoods": {"total": len(get_catalog())},
        "weights": {to_camel(k): v for k, v in FACTOR_WEIGHTS.items()},
    }


@app.post("/api/cache/sweep")
async def sweep_cache(services: Services = Depends(get_services)) -> dict[str, int]:
    return {"cleared": await services.cache.sweep_expired()}


@app.post("/api/refresh", response_model=RefreshResponse, response_model_exclude_none=True)
async def refresh(
    body: RefreshRequest | None = None,
    services: Services = Depends(get_services),
) -> RefreshResponse:
    neighborhood_id = body.neighborhood_id if body else None
    if neighborhood_id:
        target = find_neighborhood(neighborhood_id)
        if target is None:
            raise HTTPException(status_code=404, detail=f"Neighborhood not found: {neighborhood_id}")
        pool = [target]
    else:
        pool = get_catalog()

    enriched = await enrich_pool(pool, services.enricher, DEFAULT_MATCHING_CONFIG)
    refreshed = apply_enrichment(enriched)

    if neighborhood_id:
        return RefreshResponse(
            message=f"Neighborhood {pool[0].name} refreshed successfully",
            neighborhood=refreshed[0],
            last_updated=_now_iso(),
        )
    logger.info("Refreshed %d neighborhoods", len(refreshed))
    return RefreshResponse(
        message="All neighborhoods refreshed successfully",
        total_neighborhoods=len(refreshed),
        last_updated=_now_iso(),
    )
