from __future__ import annotations

import logging
from typing import Any

from .base import SourceAdapter, utc_now_iso
from .models import DemographicsResult, SourceTag, StatePopulation

logger = logging.getLogger(__name__)

INDIA_POPULATION = 1_380_004_385

STATE_POPULATIONS: tuple[StatePopulation, ...] = (
    StatePopulation(name="Maharashtra", population=112_374_333),
    StatePopulation(name="Delhi", population=16_787_941),
    StatePopulation(name="Karnataka", population=67_562_686),
    StatePopulation(name="Tamil Nadu", population=72_147_030),
    StatePopulation(name="Gujarat", population=60_439_692),
    StatePopulation(name="Uttar Pradesh", population=199_812_341),
    StatePopulation(name="West Bengal", population=91_276_115),
    StatePopulation(name="Telangana", population=35_193_978),
)


class DemographicsAdapter(SourceAdapter[DemographicsResult]):
    """Country-level demographics from the REST Countries API."""

    source_id = "demographics"
    result_type = DemographicsResult

    def fallback(self, reason: str) -> DemographicsResult:
        return DemographicsResult(
            source=SourceTag.fallback,
            total_population=INDIA_POPULATION,
            states=list(STATE_POPULATIONS),
            capital="New Delhi",
            region="Asia",
            updated_at=utc_now_iso(),
        )

    @staticmethod
    def cache_key(category: str) -> str:
        return f"demographics_{category}"

    @staticmethod
    def _normalize(payload: Any, category: str) -> DemographicsResult:
        if not isinstance(payload, list) or not payload:
            raise ValueError("no country data returned")
        country = payload[0]
        capital = country.get("capital") or []
        return DemographicsResult(
            source=SourceTag.api,
            total_population=country.get("population"),
            states=list(STATE_POPULATIONS),
            category=category,
            capital=capital[0] if capital else None,
            region=country.get("region"),
            updated_at=utc_now_iso(),
        )

    async def fetch_demographics(self, category: str = "demographics") -> DemographicsResult:
        logger.info("Fetching demographics for category=%s", category)
        result = await self._resolve(
            self.cache_key(category),
            lambda: self._call("GET", self.config.countries_url),
            lambda payload: self._normalize(payload, category),
        )
        if result.category is None:
            result = result.model_copy(update={"category": category})
        return result
