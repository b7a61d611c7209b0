from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field

from ..features.derive import features_from_attributes
from ..ranking.ranker import FACTOR_WEIGHTS, rank
from ..sources.models import SourceResult
from .config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from .enrichment import NeighborhoodEnricher
from .models import EnrichedNeighborhood, MatchResult, Neighborhood, UserPreferences

logger = logging.getLogger(__name__)


@dataclass
class MatchOutcome:
    results: list[MatchResult]
    enrichment_warning: bool
    total_candidates: int
    weights: dict[str, float] = field(default_factory=lambda: dict(FACTOR_WEIGHTS))


def _static_candidate(neighborhood: Neighborhood) -> EnrichedNeighborhood:
    features, used_defaults = features_from_attributes(neighborhood.attributes())
    return EnrichedNeighborhood(
        neighborhood=neighborhood, features=features, used_defaults=used_defaults
    )


async def enrich_pool(
    pool: list[Neighborhood],
    enricher: NeighborhoodEnricher,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> list[EnrichedNeighborhood]:
    """
    Enrich every candidate concurrently under one overall deadline.

    Output order follows *pool*, whatever order the tasks finish in.
    Candidates not finished by the deadline, or whose enrichment raised,
    are assembled from the source results that did arrive, with fallback
    records standing in for the rest.
    """
    if not pool:
        return []
    semaphore = asyncio.Semaphore(max(1, config.pool_cap))
    partials: list[dict[str, SourceResult]] = [{} for _ in pool]

    async def _bounded(neighborhood: Neighborhood, results: dict[str, SourceResult]) -> EnrichedNeighborhood:
        async with semaphore:
            return await enricher.enrich(neighborhood, results)

    tasks = [asyncio.create_task(_bounded(n, r)) for n, r in zip(pool, partials)]
    _, pending = await asyncio.wait(tasks, timeout=config.deadline_seconds)
    for task in pending:
        task.cancel()
    if pending:
        logger.warning(
            "Enrichment deadline of %.1fs hit, %d of %d candidates use partial data",
            config.deadline_seconds,
            len(pending),
            len(pool),
        )
        await asyncio.gather(*pending, return_exceptions=True)

    enriched: list[EnrichedNeighborhood] = []
    for neighborhood, task, results in zip(pool, tasks, partials):
        if task in pending:
            enriched.append(enricher.assemble(neighborhood, results, reason="timeout"))
        elif task.exception() is not None:
            logger.warning(
                "Enrichment failed for %s", neighborhood.name, exc_info=task.exception()
            )
            enriched.append(enricher.assemble(neighborhood, results, reason="failed"))
        else:
            enriched.append(task.result())
    return enriched


async def match(
    preferences: UserPreferences,
    pool: list[Neighborhood],
    result_count: int,
    enrich: bool,
    *,
    enricher: NeighborhoodEnricher | None = None,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
    rng: random.Random | None = None,
) -> MatchOutcome:
    start_time = time.time()
    total_candidates = len(pool)

    if enrich:
        if enricher is None:
            raise ValueError("enrich=True requires an enricher")
        candidates = list(pool)
        if config.shuffle:
            (rng or random).shuffle(candidates)
        candidates = candidates[: config.pool_cap]
        enriched = await enrich_pool(candidates, enricher, config)
    else:
        enriched = [_static_candidate(n) for n in pool]

    results = rank(preferences, enriched)[:result_count]

    warning = enrich and bool(results) and all(r.used_defaults for r in results)
    if warning:
        logger.warning("Every returned match was built from default features")

    elapsed_ms = round((time.time() - start_time) * 1000, 1)
    logger.info(
        "Matched %d of %d candidates (enrich=%s) in %.1fms",
        len(results),
        total_candidates,
        enrich,
        elapsed_ms,
    )
    return MatchOutcome(
        results=results,
        enrichment_warning=warning,
        total_candidates=total_candidates,
    )
