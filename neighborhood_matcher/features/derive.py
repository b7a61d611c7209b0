from __future__ import annotations

from typing import Mapping

from ..sources.models import DemographicsResult, LocationResult, POIResult, WeatherResult
from .models import BASELINE, FeatureVector

# Precipitation (mm) above which safety is reduced
HEAVY_RAIN_MM = 30.0


def _count_override(count: int | None) -> float | None:
    """``min(10, 5 + count)`` for a positive venue count, else no override."""
    if count:
        return min(10.0, 5.0 + count)
    return None


def derive_features(
    location: LocationResult | None,
    poi: POIResult | None,
    weather: WeatherResult | None,
    demographics: DemographicsResult | None,
) -> tuple[FeatureVector, bool]:
    """
    Map the four source results into a feature vector.

    Every factor starts at its baseline and is only overridden by a source
    that succeeded (``api`` or ``cache``) and reported a non-zero signal.
    Fallback and error records never override anything.

    Returns the clamped vector and ``used_defaults``, true when no override
    fired for any factor.
    """
    values = dict(BASELINE)
    overridden = False

    poi_ok = poi is not None and poi.succeeded
    weather_ok = weather is not None and weather.succeeded
    demo_ok = demographics is not None and demographics.succeeded

    if poi_ok:
        for factor, count in (
            ("safety", poi.police),
            ("walkability", poi.footways),
            ("healthcare", poi.hospitals),
            ("restaurants", poi.restaurants),
            ("public_transport", poi.transport),
            ("parks_greenery", poi.parks),
        ):
            score = _count_override(count)
            if score is not None:
                values[factor] = score
                overridden = True

    if weather_ok and weather.precipitation is not None and weather.precipitation > HEAVY_RAIN_MM:
        values["safety"] = max(2.0, values["safety"] - 2.0)

    if demo_ok and demographics.region:
        values["fast_internet"] = 8.0 if demographics.region == "Asia" else 6.0
        overridden = True

    if demo_ok and demographics.total_population:
        values["affordability"] = min(10.0, 10.0 - demographics.total_population / 1e8)
        overridden = True

    if weather_ok and weather.air_quality:
        values["air_quality"] = max(2.0, 10.0 - weather.air_quality / 50.0)
        overridden = True

    return FeatureVector.clamped(**values), not overridden


def features_from_attributes(attributes: Mapping[str, float | None]) -> tuple[FeatureVector, bool]:
    """Feature vector from already-known catalog attributes, no network involved."""
    values = dict(BASELINE)
    known = False
    for name in BASELINE:
        value = attributes.get(name)
        if value:
            values[name] = float(value)
            known = True
    return FeatureVector.clamped(**values), not known
