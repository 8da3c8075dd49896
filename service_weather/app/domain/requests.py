"""
Validation of raw query parameters into request descriptors.

Coordinates keep the caller's raw strings alongside the parsed floats: the
raw text is what cache keys and outbound requests use.
"""

import math
from dataclasses import dataclass
from typing import Optional, Union

from shared.errors import ClientValidationError

MIN_QUERY_LENGTH = 2
DEFAULT_SEARCH_LIMIT = 5
MAX_SEARCH_LIMIT = 10


@dataclass(frozen=True)
class ByCoordinates:
    lat: str
    lon: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class ByCity:
    name: str


@dataclass(frozen=True)
class SearchQuery:
    query: str
    limit: int


LocationQuery = Union[ByCoordinates, ByCity]


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def _parse_coordinate(raw: str, field: str, bound: float) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ClientValidationError(f"{field}は数値で指定してください", details={field: raw})

    if not math.isfinite(value) or not -bound <= value <= bound:
        raise ClientValidationError(
            f"{field}は-{bound:g}から{bound:g}の範囲で指定してください",
            details={field: raw},
        )
    return value


def parse_location_query(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    city: Optional[str] = None,
) -> LocationQuery:
    """
    Build a location descriptor from ``lat``/``lon``/``city`` parameters.

    Coordinates take precedence over ``city`` when both are supplied.

    Raises:
        ClientValidationError: nothing usable was given, only one of
            ``lat``/``lon`` was given, or a coordinate is malformed.
    """
    has_lat, has_lon, has_city = _present(lat), _present(lon), _present(city)

    if not (has_lat or has_lon or has_city):
        raise ClientValidationError("座標（lat, lon）または都市名（city）が必要です")

    if has_lat != has_lon:
        raise ClientValidationError("緯度と経度は両方指定する必要があります")

    if has_lat:
        return ByCoordinates(
            lat=lat,
            lon=lon,
            latitude=_parse_coordinate(lat, "lat", 90),
            longitude=_parse_coordinate(lon, "lon", 180),
        )
    return ByCity(name=city)


def parse_search_query(q: Optional[str] = None, limit: Optional[str] = None) -> SearchQuery:
    """
    Build a city-search descriptor.

    The query is trimmed and must keep at least two characters. ``limit``
    defaults to 5 and is clamped to [1, 10].
    """
    if q is None or q.strip() == "":
        raise ClientValidationError("検索クエリ（q）が必要です")

    query = q.strip()
    if len(query) < MIN_QUERY_LENGTH:
        raise ClientValidationError(f"検索クエリは{MIN_QUERY_LENGTH}文字以上で入力してください")

    if limit is None or limit.strip() == "":
        size = DEFAULT_SEARCH_LIMIT
    else:
        try:
            size = int(limit)
        except ValueError:
            raise ClientValidationError("limitは整数で指定してください", details={"limit": limit})

    return SearchQuery(query=query, limit=max(1, min(size, MAX_SEARCH_LIMIT)))
