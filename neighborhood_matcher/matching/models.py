from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..features.models import FeatureVector

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserPreferences(BaseModel):
    """Ratings on a 1-5 scale; fractional values are allowed."""

    model_config = _CAMEL

    safety: float = 3.0
    walkability: float = 3.0
    healthcare: float = 3.0
    fast_internet: float = 3.0
    affordability: float = 3.0
    restaurants: float = 3.0
    public_transport: float = 3.0
    parks_greenery: float = 3.0


class PreferenceInput(UserPreferences):
    """Caller-supplied preferences: every factor required and within 1-5."""

    safety: float = Field(..., ge=1, le=5)
    walkability: float = Field(..., ge=1, le=5)
    healthcare: float = Field(..., ge=1, le=5)
    fast_internet: float = Field(..., ge=1, le=5)
    affordability: float = Field(..., ge=1, le=5)
    restaurants: float = Field(..., ge=1, le=5)
    public_transport: float = Field(..., ge=1, le=5)
    parks_greenery: float = Field(..., ge=1, le=5)


class Neighborhood(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    city: str
    lat: float | None = None
    lon: float | None = None
    # Already-known factor attributes (static catalog); None when unknown
    safety: float | None = None
    walkability: float | None = None
    healthcare: float | None = None
    fast_internet: float | None = None
    affordability: float | None = None
    restaurants: float | None = None
    public_transport: float | None = None
    parks_greenery: float | None = None
    air_quality: float | None = None

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if self.lat is None or self.lon is None:
            return None
        return self.lat, self.lon

    def attributes(self) -> dict[str, float | None]:
        return self.model_dump(exclude={"id", "name", "city", "lat", "lon"})


class EnrichedNeighborhood(BaseModel):
    """A candidate with the feature vector it will be ranked on."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    neighborhood: Neighborhood
    features: FeatureVector
    used_defaults: bool = False
    data_sources: list[str] = Field(default_factory=list)
    data_quality: float | None = None


class Contribution(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    factor: str
    user_weighted: float
    candidate_weighted: float
    product: float


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    neighborhood: Neighborhood
    features: FeatureVector
    similarity: float = Field(..., ge=0.0, le=1.0)
    contributions: list[Contribution]
    used_defaults: bool = False
    data_sources: list[str] = Field(default_factory=list)
    data_quality: float | None = None


class MatchRequest(BaseModel):
    model_config = _CAMEL

    user_prefs: PreferenceInput
    use_real_time_data: bool = False
    city: str | None = Field(default=None, description="Restrict the pool to one city")
    limit: int | None = Field(default=None, ge=1, le=50)


class MatchResponse(BaseModel):
    model_config = _CAMEL

    success: bool = True
    user_preferences: UserPreferences
    top_matches: list[MatchResult]
    total_neighborhoods: int
    data_source: str
    algorithm: str = "weighted-cosine-similarity"
    weights: dict[str, float]
    enrichment_warning: bool = False
    last_updated: str


class NeighborhoodListResponse(BaseModel):
    model_config = _CAMEL

    neighborhoods: list[Neighborhood]
    total_count: int
    data_source: str = "static"


class QualityDetail(BaseModel):
    model_config = _CAMEL

    name: str
    quality: float
    sources: list[str]


class DataQualitySummary(BaseModel):
    model_config = _CAMEL

    average: float
    details: list[QualityDetail]


class RealtimeNeighborhoodsResponse(BaseModel):
    model_config = _CAMEL

    neighborhoods: list[EnrichedNeighborhood]
    total_count: int
    data_source: str = "realtime"
    last_updated: str
    data_quality: DataQualitySummary


class RefreshRequest(BaseModel):
    model_config = _CAMEL

    neighborhood_id: str | None = Field(default=None, description="Refresh one neighborhood; omit for all")


class RefreshResponse(BaseModel):
    model_config = _CAMEL

    success: bool = True
    message: str
    neighborhood: Neighborhood | None = None
    total_neighborhoods: int | None = None
    last_updated: str
