"""
Domain layer for the Weather Service.

- models: the unified snapshot and city-search payloads
- provider_schemas: strict schemas for OpenWeatherMap responses
- requests: query parameter validation into request descriptors
- transform: provider payload -> unified model, including forecast aggregation
"""

from .models import CitySearchResponse, CitySearchResult, WeatherSnapshot
from .requests import ByCity, ByCoordinates, LocationQuery, SearchQuery, parse_location_query, parse_search_query

__all__ = [
    "ByCity",
    "ByCoordinates",
    "CitySearchResponse",
    "CitySearchResult",
    "LocationQuery",
    "SearchQuery",
    "WeatherSnapshot",
    "parse_location_query",
    "parse_search_query",
]
