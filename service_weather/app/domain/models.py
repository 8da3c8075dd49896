"""
Unified weather model returned to the presentation layer.

Field names serialize in camelCase (``feelsLike``, ``displayName``) and
optional sections are omitted from the body when absent.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SnapshotModel(BaseModel):
    """Base for immutable, camelCase-serialized payload models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Coordinates(SnapshotModel):
    lat: float
    lon: float


class Location(SnapshotModel):
    name: str
    country: str
    coordinates: Coordinates


class CurrentConditions(SnapshotModel):
    temperature: int
    feels_like: int
    humidity: int
    wind_speed: float
    wind_direction: int
    weather: str
    icon: str
    visibility: int
    uv_index: int = 0


class DailyForecast(SnapshotModel):
    date: str
    high: int
    low: int
    weather: str
    icon: str
    precipitation: int
    wind_speed: float


class HourlyForecast(SnapshotModel):
    time: str
    temperature: int
    weather: str
    icon: str
    precipitation: int


class WeatherSnapshot(SnapshotModel):
    """Provider-agnostic weather payload."""

    location: Location
    current: CurrentConditions
    forecast: Optional[List[DailyForecast]] = None
    hourly: Optional[List[HourlyForecast]] = None


class CitySearchResult(SnapshotModel):
    name: str
    country: str
    state: Optional[str] = None
    coordinates: Coordinates
    display_name: str


class CitySearchResponse(SnapshotModel):
    cities: List[CitySearchResult]
