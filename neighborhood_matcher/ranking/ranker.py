from __future__ import annotations

import math
from typing import Mapping, Sequence

import numpy as np
from pydantic.alias_generators import to_camel
from sklearn.metrics.pairwise import cosine_similarity

from ..features.models import FACTORS
from ..matching.models import Contribution, EnrichedNeighborhood, MatchResult, UserPreferences

FACTOR_WEIGHTS: dict[str, float] = {
    "safety": 0.22,
    "walkability": 0.18,
    "healthcare": 0.18,
    "fast_internet": 0.16,
    "affordability": 0.12,
    "restaurants": 0.06,
    "public_transport": 0.04,
    "parks_greenery": 0.04,
}

MIN_RATING = 1.0
MAX_RATING = 5.0


def _weight_array(weights: Mapping[str, float]) -> np.ndarray:
    missing = [f for f in FACTORS if f not in weights]
    if missing:
        raise ValueError(f"weights missing factors: {missing}")
    arr = np.array([float(weights[f]) for f in FACTORS])
    if not math.isclose(arr.sum(), 1.0, abs_tol=1e-9):
        raise ValueError(f"factor weights must sum to 1.0, got {arr.sum():.6f}")
    return arr


def scale_preferences(preferences: UserPreferences) -> np.ndarray:
    """Clamp ratings to [1, 5] and map them onto the [2, 10] feature scale."""
    ratings = np.array([float(getattr(preferences, f)) for f in FACTORS])
    return np.clip(ratings, MIN_RATING, MAX_RATING) * 2.0


def weighted_cosine(user_weighted: np.ndarray, candidate_weighted: np.ndarray) -> float:
    """Cosine similarity; zero-magnitude vectors give 0."""
    sim = cosine_similarity(user_weighted.reshape(1, -1), candidate_weighted.reshape(1, -1))
    return float(sim[0, 0])


def rank(
    preferences: UserPreferences,
    candidates: Sequence[EnrichedNeighborhood],
    weights: Mapping[str, float] = FACTOR_WEIGHTS,
) -> list[MatchResult]:
    """
    Rank candidates by weighted cosine similarity to the user's preferences.

    Both vectors are weighted element-wise before the cosine is taken. The
    similarity is rounded to 3 decimals; ties keep input order.
    """
    w = _weight_array(weights)
    user_weighted = scale_preferences(preferences) * w

    results: list[MatchResult] = []
    for candidate in candidates:
        candidate_weighted = np.array(candidate.features.as_list()) * w
        similarity = round(weighted_cosine(user_weighted, candidate_weighted), 3)
        products = user_weighted * candidate_weighted
        contributions = [
            Contribution(
                factor=to_camel(factor),
                user_weighted=float(user_weighted[i]),
                candidate_weighted=float(candidate_weighted[i]),
                product=float(products[i]),
            )
            for i, factor in enumerate(FACTORS)
        ]
        results.append(
            MatchResult(
                neighborhood=candidate.neighborhood,
                features=candidate.features,
                similarity=min(1.0, max(0.0, similarity)),
                contributions=contributions,
                used_defaults=candidate.used_defaults,
                data_sources=candidate.data_sources,
                data_quality=candidate.data_quality,
            )
        )

    # sorted() is stable, so equal similarities keep input order
    return sorted(results, key=lambda r: r.similarity, reverse=True)
