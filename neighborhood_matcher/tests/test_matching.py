from __future__ import annotations

import asyncio
import random

import pytest

from neighborhood_matcher.cache.config import CacheConfig
from neighborhood_matcher.features.derive import features_from_attributes
from neighborhood_matcher.features.models import FeatureVector
from neighborhood_matcher.matching.config import MatchingConfig, default_deadline
from neighborhood_matcher.matching.data_store import get_catalog
from neighborhood_matcher.matching.models import EnrichedNeighborhood, Neighborhood, UserPreferences
from neighborhood_matcher.matching.orchestrator import enrich_pool, match
from neighborhood_matcher.ranking.ranker import rank
from neighborhood_matcher.services import build_services
from neighborhood_matcher.sources.config import SOURCE_IDS, SourceConfig

NO_SHUFFLE = MatchingConfig(shuffle=False)


def _pool(n: int) -> list[Neighborhood]:
    return [
        Neighborhood(id=f"n{i}", name=f"Area {i}", city="Mumbai", lat=19.0 + i / 100, lon=72.8, safety=2 + i % 9)
        for i in range(n)
    ]


class FakeEnricher:
    """Returns catalog-attribute features, optionally after a per-candidate delay."""

    def __init__(self, delays: dict[str, float] | None = None, failing: set[str] | None = None):
        self.delays = delays or {}
        self.failing = failing or set()
        self.seen: list[str] = []

    async def enrich(self, neighborhood: Neighborhood, results=None) -> EnrichedNeighborhood:
        self.seen.append(neighborhood.id)
        await asyncio.sleep(self.delays.get(neighborhood.id, 0))
        if neighborhood.id in self.failing:
            raise RuntimeError("source exploded")
        features, used_defaults = features_from_attributes(neighborhood.attributes())
        return EnrichedNeighborhood(
            neighborhood=neighborhood,
            features=features,
            used_defaults=used_defaults,
            data_sources=["fake:api"],
            data_quality=100.0,
        )

    def assemble(self, neighborhood: Neighborhood, results, reason=None) -> EnrichedNeighborhood:
        return EnrichedNeighborhood(
            neighborhood=neighborhood,
            features=FeatureVector(),
            used_defaults=True,
            data_sources=[f"enrichment:{reason}"],
            data_quality=0.0,
        )


def _services(tmp_path, upstream, fast_sources, config=NO_SHUFFLE):
    return build_services(
        cache_config=CacheConfig(path=tmp_path / "api-cache.json"),
        source_config=fast_sources,
        matching_config=config,
        client=upstream.client(),
    )


# ── static path ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_static_match_uses_catalog_attributes():
    catalog = get_catalog()
    outcome = await match(UserPreferences(safety=5, fast_internet=5), catalog, 5, enrich=False)

    assert len(outcome.results) == 5
    assert outcome.total_candidates == len(catalog)
    assert outcome.enrichment_warning is False
    sims = [r.similarity for r in outcome.results]
    assert sims == sorted(sims, reverse=True)
    assert all(not r.used_defaults for r in outcome.results)


@pytest.mark.asyncio
async def test_static_match_does_not_need_an_enricher():
    outcome = await match(UserPreferences(), _pool(3), 10, enrich=False)
    assert len(outcome.results) == 3


@pytest.mark.asyncio
async def test_enrich_without_enricher_is_rejected():
    with pytest.raises(ValueError):
        await match(UserPreferences(), _pool(3), 10, enrich=True)


@pytest.mark.asyncio
async def test_empty_pool_gives_no_results_and_no_warning():
    outcome = await match(UserPreferences(), [], 10, enrich=True, enricher=FakeEnricher())
    assert outcome.results == []
    assert outcome.enrichment_warning is False


# ── enrichment pool ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_pool_is_capped_before_enrichment():
    enricher = FakeEnricher()
    pool = _pool(30)

    outcome = await match(UserPreferences(), pool, 50, enrich=True, enricher=enricher, config=NO_SHUFFLE)

    assert len(enricher.seen) == 20
    assert set(enricher.seen) == {n.id for n in pool[:20]}
    assert outcome.total_candidates == 30
    assert len(outcome.results) == 20


@pytest.mark.asyncio
async def test_seeded_shuffle_picks_reproducible_subset():
    pool = _pool(30)
    config = MatchingConfig(shuffle=True)
    expected = list(pool)
    random.Random(7).shuffle(expected)

    enricher = FakeEnricher()
    await match(UserPreferences(), pool, 5, enrich=True, enricher=enricher, config=config, rng=random.Random(7))

    assert set(enricher.seen) == {n.id for n in expected[:20]}


@pytest.mark.asyncio
async def test_completion_order_does_not_change_ranking():
    pool = _pool(6)
    # earlier candidates finish last
    delays = {n.id: 0.01 * (len(pool) - i) for i, n in enumerate(pool)}

    enriched = await enrich_pool(pool, FakeEnricher(delays), NO_SHUFFLE)

    assert [e.neighborhood.id for e in enriched] == [n.id for n in pool]
    reference = await enrich_pool(pool, FakeEnricher(), NO_SHUFFLE)
    prefs = UserPreferences(safety=5)
    assert [r.neighborhood.id for r in rank(prefs, enriched)] == [
        r.neighborhood.id for r in rank(prefs, reference)
    ]


@pytest.mark.asyncio
async def test_deadline_assembles_unfinished_candidates():
    pool = _pool(3)
    enricher = FakeEnricher(delays={"n1": 5.0})
    config = MatchingConfig(shuffle=False, deadline_seconds=0.1)

    enriched = await enrich_pool(pool, enricher, config)

    by_id = {e.neighborhood.id: e for e in enriched}
    assert by_id["n1"].used_defaults is True
    assert by_id["n1"].data_sources == ["enrichment:timeout"]
    assert by_id["n1"].data_quality == 0.0
    assert by_id["n0"].data_sources == ["fake:api"]
    assert by_id["n2"].data_sources == ["fake:api"]


@pytest.mark.asyncio
async def test_enrichment_exception_degrades_one_candidate():
    pool = _pool(3)
    enricher = FakeEnricher(failing={"n2"})

    outcome = await match(UserPreferences(), pool, 10, enrich=True, enricher=enricher, config=NO_SHUFFLE)

    assert len(outcome.results) == 3
    failed = [r for r in outcome.results if r.neighborhood.id == "n2"][0]
    assert failed.used_defaults is True
    assert failed.data_sources == ["enrichment:failed"]
    assert outcome.enrichment_warning is False


# ── end to end through the real enricher ─────────────────────────────────


@pytest.mark.asyncio
async def test_realtime_match_with_live_sources(tmp_path, upstream, fast_sources):
    services = _services(tmp_path, upstream, fast_sources)
    pool = [n for n in get_catalog() if n.city == "Pune"]

    outcome = await match(UserPreferences(), pool, 10, enrich=True, enricher=services.enricher, config=NO_SHUFFLE)
    await services.aclose()

    assert len(outcome.results) == 3
    assert outcome.enrichment_warning is False
    first = outcome.results[0]
    assert "poi:api" in first.data_sources or "poi:cache" in first.data_sources
    assert first.data_quality == 100.0
    assert first.used_defaults is False
    assert first.features.restaurants == 7.0


@pytest.mark.asyncio
async def test_deadline_keeps_sources_that_already_answered(tmp_path, upstream, fast_sources, monkeypatch):
    services = _services(tmp_path, upstream, fast_sources, MatchingConfig(shuffle=False, deadline_seconds=0.3))

    async def stalled_weather(lat, lon):
        await asyncio.sleep(10)

    monkeypatch.setattr(services.enricher.weather, "fetch_weather", stalled_weather)
    pool = [Neighborhood(id="bw", name="Bandra West", city="Mumbai")]

    enriched = await enrich_pool(pool, services.enricher, services.enricher.config)
    await services.aclose()

    candidate = enriched[0]
    assert candidate.used_defaults is False
    assert candidate.features.restaurants == 7.0
    assert candidate.data_sources == ["location:api", "poi:api", "weather:timeout", "demographics:api"]
    assert candidate.data_quality == 75.0


@pytest.mark.asyncio
async def test_realtime_match_with_every_source_down_warns(tmp_path, failing_upstream, fast_sources):
    services = _services(tmp_path, failing_upstream, fast_sources)
    pool = _pool(2)

    outcome = await match(UserPreferences(), pool, 10, enrich=True, enricher=services.enricher, config=NO_SHUFFLE)
    await services.aclose()

    assert len(outcome.results) == 2
    assert outcome.enrichment_warning is True
    for result in outcome.results:
        assert result.used_defaults is True
        assert result.data_quality == 50.0
        assert "location:error" in result.data_sources
        assert "weather:fallback" in result.data_sources
    assert len(services.cache) == 0


@pytest.mark.asyncio
async def test_enricher_falls_back_to_catalog_coordinates(tmp_path, make_upstream, fast_sources):
    upstream = make_upstream({"nominatim.openstreetmap.org": []})
    services = _services(tmp_path, upstream, fast_sources)
    neighborhood = Neighborhood(id="x", name="Nowhere", city="Mumbai", lat=18.5, lon=73.9)

    enriched = await services.enricher.enrich(neighborhood)
    await services.aclose()

    assert "location:error" in enriched.data_sources
    assert "poi:api" in enriched.data_sources
    assert enriched.data_quality == 75.0
    assert services.cache.get("poi_18.5_73.9_2000") is not None


# ── deadline default ─────────────────────────────────────────────────────


def test_default_deadline_covers_cold_cache_queue(monkeypatch):
    monkeypatch.delenv("MATCH_DEADLINE_SECONDS", raising=False)
    sources = SourceConfig(timeout=10.0, max_attempts=2, min_intervals={s: 3.0 for s in SOURCE_IDS})

    deadline = default_deadline(20, sources)

    # 20 geocodes plus 40 weather calls, each waiting out a 3s interval
    assert deadline >= 20 * 3.0 + 40 * 3.0
    assert deadline == 200.0


def test_deadline_env_override_wins(monkeypatch):
    monkeypatch.setenv("MATCH_DEADLINE_SECONDS", "45")
    assert default_deadline(20) == 45.0
