from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Ranking factors, in vector order
FACTORS: tuple[str, ...] = (
    "safety",
    "walkability",
    "healthcare",
    "fast_internet",
    "affordability",
    "restaurants",
    "public_transport",
    "parks_greenery",
)

MIN_SCORE = 2.0
MAX_SCORE = 10.0

BASELINE: dict[str, float] = {
    "safety": 7.0,
    "walkability": 5.0,
    "healthcare": 5.0,
    "fast_internet": 8.0,
    "affordability": 5.0,
    "restaurants": 5.0,
    "public_transport": 5.0,
    "parks_greenery": 5.0,
    "air_quality": 7.0,
}


def clamp_score(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, float(value)))


class FeatureVector(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    safety: float = BASELINE["safety"]
    walkability: float = BASELINE["walkability"]
    healthcare: float = BASELINE["healthcare"]
    fast_internet: float = BASELINE["fast_internet"]
    affordability: float = BASELINE["affordability"]
    restaurants: float = BASELINE["restaurants"]
    public_transport: float = BASELINE["public_transport"]
    parks_greenery: float = BASELINE["parks_greenery"]
    air_quality: float = BASELINE["air_quality"]

    @classmethod
    def clamped(cls, **values: float) -> FeatureVector:
        return cls(**{name: clamp_score(v) for name, v in values.items()})

    def as_list(self) -> list[float]:
        """Ranking factors in ``FACTORS`` order (air quality excluded)."""
        return [getattr(self, name) for name in FACTORS]
