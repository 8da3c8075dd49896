"""
Weather lookup service: response cache in front of the provider gateway.
"""

from typing import Any, Awaitable, Callable, Optional, Tuple

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from service_weather.app.adapters.openweather_client import OpenWeatherClient
from service_weather.app.caching import ResponseCache, location_key, search_key
from service_weather.app.caching.keys import CURRENT, FORECAST, SEARCH
from service_weather.app.domain.models import CitySearchResponse, WeatherSnapshot
from service_weather.app.domain.requests import LocationQuery, SearchQuery

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"


class WeatherLookupService:
    """
    Coordinates cache reads and provider fetches for each request kind.

    Every method returns the payload together with ``"HIT"`` or ``"MISS"``
    depending on whether the response cache satisfied the request. Only
    successful fetches are stored. Concurrent misses for the same key are
    not coalesced; each one calls the provider and the last store wins.
    """

    def __init__(
        self,
        cache: ResponseCache,
        client: OpenWeatherClient,
        *,
        weather_ttl_seconds: int = 300,
        search_ttl_seconds: int = 1800,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.cache = cache
        self.client = client
        self.weather_ttl_seconds = weather_ttl_seconds
        self.search_ttl_seconds = search_ttl_seconds
        self.metrics = metrics
        self.logger = get_logger("weather.lookup")

    async def get_current(self, query: LocationQuery) -> Tuple[WeatherSnapshot, str]:
        """Current conditions for a validated location query."""
        return await self._lookup(
            CURRENT,
            location_key(CURRENT, query),
            self.weather_ttl_seconds,
            lambda: self.client.fetch_current(query),
        )

    async def get_forecast(self, query: LocationQuery) -> Tuple[WeatherSnapshot, str]:
        """Current conditions plus forecast for a validated location query."""
        return await self._lookup(
            FORECAST,
            location_key(FORECAST, query),
            self.weather_ttl_seconds,
            lambda: self.client.fetch_forecast(query),
        )

    async def search_cities(self, query: SearchQuery) -> Tuple[CitySearchResponse, str]:
        """City matches for a validated search query."""
        return await self._lookup(
            SEARCH,
            search_key(query),
            self.search_ttl_seconds,
            lambda: self.client.search_cities(query),
        )

    async def _lookup(
        self,
        cache_type: str,
        key: str,
        ttl: int,
        fetch: Callable[[], Awaitable[Any]],
    ) -> Tuple[Any, str]:
        cached = self.cache.lookup(key, ttl)
        self._record_cache(cache_type, cached is not None)
        if cached is not None:
            return cached, CACHE_HIT

        payload = await fetch()
        self.cache.store(key, payload)
        self.logger.info("Fetched from weather provider", cache_type=cache_type, key=key)
        return payload, CACHE_MISS

    def _record_cache(self, cache_type: str, hit: bool) -> None:
        if not self.metrics:
            return
        self.metrics.record_cache_result(cache_type, hit)
        self.metrics.set_gauge("cache_entries", len(self.cache))
