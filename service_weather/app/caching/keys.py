"""
Cache key derivation.

Keys are pure functions of the logical query. Coordinates are keyed on the
caller's raw strings, so "35.0" and "35.00" are different keys.
"""

from service_weather.app.domain.requests import ByCoordinates, LocationQuery, SearchQuery

CURRENT = "current"
FORECAST = "forecast"
SEARCH = "search"


def location_key(kind: str, query: LocationQuery) -> str:
    """Key for a current/forecast lookup, e.g. ``forecast:35.0,139.0``."""
    if isinstance(query, ByCoordinates):
        return f"{kind}:{query.lat},{query.lon}"
    return f"{kind}:{query.name}"


def search_key(query: SearchQuery) -> str:
    """Key for a city search; the limit is part of the key."""
    return f"{SEARCH}:{query.query.lower()}:{query.limit}"
