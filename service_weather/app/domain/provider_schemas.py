"""
Schemas for OpenWeatherMap payloads.

Provider JSON is validated against these models before it is transformed;
a payload that does not match raises ``pydantic.ValidationError``. Unknown
fields are ignored.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# 9999-12-31T23:59:59Z
MAX_TIMESTAMP = 253402300799


class ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProviderCoord(ProviderModel):
    lat: float
    lon: float


class ProviderCondition(ProviderModel):
    main: str = ""
    description: str
    icon: str


class CurrentMain(ProviderModel):
    temp: float
    feels_like: float
    humidity: int


class CurrentWind(ProviderModel):
    speed: float
    deg: int = 0


class CurrentSys(ProviderModel):
    country: str = ""


class CurrentWeatherPayload(ProviderModel):
    """``/data/2.5/weather`` response."""

    name: str
    sys: CurrentSys
    coord: ProviderCoord
    main: CurrentMain
    wind: CurrentWind
    weather: List[ProviderCondition] = Field(min_length=1)
    # Omitted by the provider when visibility is unknown
    visibility: int = 0


class ForecastMain(ProviderModel):
    temp: float


class ForecastWind(ProviderModel):
    speed: float


class ForecastSample(ProviderModel):
    dt: int = Field(ge=0, le=MAX_TIMESTAMP)
    main: ForecastMain
    weather: List[ProviderCondition] = Field(min_length=1)
    wind: ForecastWind
    pop: float = Field(default=0.0, ge=0, le=1)


class ForecastPayload(ProviderModel):
    """``/data/2.5/forecast`` response: chronological 3-hour samples."""

    list: List[ForecastSample] = Field(min_length=1)


class GeocodingEntry(ProviderModel):
    """One element of the ``/geo/1.0/direct`` response array."""

    name: str
    local_names: Dict[str, str] = Field(default_factory=dict)
    lat: float
    lon: float
    country: str
    state: Optional[str] = None
