"""
Transformations from validated provider payloads to the unified model.
"""

import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .models import (
    CitySearchResult,
    Coordinates,
    CurrentConditions,
    DailyForecast,
    HourlyForecast,
    Location,
    WeatherSnapshot,
)
from .provider_schemas import CurrentWeatherPayload, ForecastPayload, ForecastSample, GeocodingEntry

MAX_FORECAST_DAYS = 5
MAX_HOURLY_SAMPLES = 24
JAPANESE_NAME_KEYS = ("ja", "ja-JP")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def format_timestamp(epoch_seconds: int) -> str:
    """Format a unix timestamp as ISO-8601 UTC with millisecond precision."""
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_date(epoch_seconds: int) -> str:
    """Calendar date (UTC) of a unix timestamp as ``YYYY-MM-DD``."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).date().isoformat()


def precipitation_percent(probability: float) -> int:
    return round_half_up(probability * 100)


def current_conditions(payload: CurrentWeatherPayload) -> CurrentConditions:
    condition = payload.weather[0]
    return CurrentConditions(
        temperature=round_half_up(payload.main.temp),
        feels_like=round_half_up(payload.main.feels_like),
        humidity=payload.main.humidity,
        wind_speed=payload.wind.speed,
        wind_direction=payload.wind.deg,
        weather=condition.description,
        icon=condition.icon,
        visibility=payload.visibility,
        # UV index is not part of the current-weather product
        uv_index=0,
    )


def build_current_snapshot(payload: CurrentWeatherPayload) -> WeatherSnapshot:
    """Snapshot with current conditions only."""
    return WeatherSnapshot(
        location=Location(
            name=payload.name,
            country=payload.sys.country,
            coordinates=Coordinates(lat=payload.coord.lat, lon=payload.coord.lon),
        ),
        current=current_conditions(payload),
    )


def aggregate_daily(samples: Sequence[ForecastSample], max_days: int = MAX_FORECAST_DAYS) -> List[DailyForecast]:
    """
    Collapse 3-hour samples into daily summaries.

    Samples are bucketed by UTC calendar date. High/low are the max/min
    sample temperatures; weather, icon and wind come from the first sample
    of the date. Precipitation is the highest probability of precipitation
    seen that day, as a percentage. Dates keep encounter order and only the
    first ``max_days`` are returned.
    """
    buckets: Dict[str, List[ForecastSample]] = {}
    for sample in samples:
        date = utc_date(sample.dt)
        if date not in buckets:
            if len(buckets) == max_days:
                break
            buckets[date] = []
        buckets[date].append(sample)

    daily: List[DailyForecast] = []
    for date, day_samples in buckets.items():
        first = day_samples[0]
        temps = [sample.main.temp for sample in day_samples]
        daily.append(
            DailyForecast(
                date=date,
                high=round_half_up(max(temps)),
                low=round_half_up(min(temps)),
                weather=first.weather[0].description,
                icon=first.weather[0].icon,
                precipitation=precipitation_percent(max(sample.pop for sample in day_samples)),
                wind_speed=first.wind.speed,
            )
        )
    return daily


def hourly_samples(samples: Sequence[ForecastSample], limit: int = MAX_HOURLY_SAMPLES) -> List[HourlyForecast]:
    """First ``limit`` samples in chronological order, unaggregated."""
    return [
        HourlyForecast(
            time=format_timestamp(sample.dt),
            temperature=round_half_up(sample.main.temp),
            weather=sample.weather[0].description,
            icon=sample.weather[0].icon,
            precipitation=precipitation_percent(sample.pop),
        )
        for sample in samples[:limit]
    ]


def build_forecast_snapshot(
    current: CurrentWeatherPayload,
    forecast: ForecastPayload,
    location: Optional[Location] = None,
) -> WeatherSnapshot:
    """
    Snapshot with current conditions plus daily and hourly forecasts.

    ``location`` replaces the one derived from the current-weather payload
    when the caller already resolved it.
    """
    snapshot = build_current_snapshot(current)
    if location is None:
        location = snapshot.location

    return WeatherSnapshot(
        location=location,
        current=snapshot.current,
        forecast=aggregate_daily(forecast.list),
        hourly=hourly_samples(forecast.list),
    )


def localized_name(entry: GeocodingEntry) -> str:
    for key in JAPANESE_NAME_KEYS:
        name = entry.local_names.get(key)
        if name:
            return name
    return entry.name


def build_city_results(entries: Sequence[GeocodingEntry], limit: int) -> List[CitySearchResult]:
    """Format geocoding matches, keeping at most ``limit`` of them."""
    results: List[CitySearchResult] = []
    for entry in entries[:limit]:
        name = localized_name(entry)
        parts = [name]
        if entry.state:
            parts.append(entry.state)
        parts.append(entry.country)
        results.append(
            CitySearchResult(
                name=name,
                country=entry.country,
                state=entry.state,
                coordinates=Coordinates(lat=entry.lat, lon=entry.lon),
                display_name=", ".join(parts),
            )
        )
    return results
