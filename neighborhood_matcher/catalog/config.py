"""
Configuration for the catalog ingestion pipeline.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class City:
    name: str
    lat: float
    lon: float


MAJOR_CITIES: tuple[City, ...] = (
    City("Delhi", 28.6139, 77.2090),
    City("Mumbai", 19.0760, 72.8777),
    City("Bengaluru", 12.9716, 77.5946),
    City("Pune", 18.5204, 73.8567),
    City("Chennai", 13.0827, 80.2707),
    City("Hyderabad", 17.3850, 78.4867),
    City("Kolkata", 22.5726, 88.3639),
    City("Ahmedabad", 23.0225, 72.5714),
)


@dataclass(frozen=True)
class IngestionConfig:
    """
    Configuration for discovering neighborhoods through the Overpass API.
    """

    overpass_url: str = "https://overpass-api.de/api/interpreter"
    cities: tuple[City, ...] = MAJOR_CITIES
    radius_meters: int = 15000
    timeout: float = 90.0
    output_dir: Path = Path("neighborhood_matcher/data")
    output_filename: str = "osm_neighborhoods.json"

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.output_filename


DEFAULT_INGESTION_CONFIG = IngestionConfig()
