"""
Unit tests for the Weather lookup service.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from service_weather.app.caching import ResponseCache
from service_weather.app.domain import ByCity, SearchQuery, parse_location_query
from service_weather.app.domain.models import CitySearchResponse
from service_weather.app.weather import CACHE_HIT, CACHE_MISS, WeatherLookupService
from shared.errors import NotFoundError, UpstreamTimeoutError
from shared.metrics import MetricsCollector
from shared.test_helpers import FakeClock


class TestWeatherLookupService:
    """Test cases for WeatherLookupService."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return ResponseCache(default_ttl=300, clock=clock)

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.fetch_current = AsyncMock(return_value={"current": "snapshot"})
        client.fetch_forecast = AsyncMock(return_value={"forecast": "snapshot"})
        client.search_cities = AsyncMock(return_value=CitySearchResponse(cities=[]))
        return client

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("weather")

    @pytest.fixture
    def lookup(self, cache, client, metrics):
        return WeatherLookupService(cache, client, metrics=metrics)

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, lookup, client):
        query = ByCity(name="Tokyo")

        first, first_status = await lookup.get_current(query)
        second, second_status = await lookup.get_current(query)

        assert (first_status, second_status) == (CACHE_MISS, CACHE_HIT)
        assert second is first
        client.fetch_current.assert_awaited_once_with(query)

    @pytest.mark.asyncio
    async def test_current_and_forecast_are_cached_separately(self, lookup, client):
        query = ByCity(name="Tokyo")

        await lookup.get_current(query)
        _, status = await lookup.get_forecast(query)

        assert status == CACHE_MISS
        client.fetch_forecast.assert_awaited_once_with(query)

    @pytest.mark.asyncio
    async def test_weather_entries_expire_after_five_minutes(self, lookup, client, clock):
        query = parse_location_query(lat="35.0", lon="139.0")

        await lookup.get_forecast(query)
        clock.advance(299)
        _, status_before = await lookup.get_forecast(query)
        clock.advance(1)
        _, status_after = await lookup.get_forecast(query)

        assert (status_before, status_after) == (CACHE_HIT, CACHE_MISS)
        assert client.fetch_forecast.await_count == 2

    @pytest.mark.asyncio
    async def test_search_entries_live_thirty_minutes(self, lookup, client, clock):
        query = SearchQuery(query="Tokyo", limit=5)

        await lookup.search_cities(query)
        clock.advance(1799)
        _, status = await lookup.search_cities(query)

        assert status == CACHE_HIT
        clock.advance(1)
        _, status = await lookup.search_cities(query)
        assert status == CACHE_MISS

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, lookup, client):
        await lookup.search_cities(SearchQuery(query="Tokyo", limit=5))
        _, status = await lookup.search_cities(SearchQuery(query="TOKYO", limit=5))

        assert status == CACHE_HIT
        client.search_cities.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_different_search_limits_are_cached_separately(self, lookup, client):
        await lookup.search_cities(SearchQuery(query="Tokyo", limit=5))
        _, status = await lookup.search_cities(SearchQuery(query="Tokyo", limit=3))

        assert status == CACHE_MISS

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, lookup, client, cache):
        client.fetch_current.side_effect = [NotFoundError(), {"current": "snapshot"}]
        query = ByCity(name="NoSuchPlace123")

        with pytest.raises(NotFoundError):
            await lookup.get_current(query)
        assert len(cache) == 0

        _, status = await lookup.get_current(query)
        assert status == CACHE_MISS
        assert client.fetch_current.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_propagates(self, lookup, client, cache):
        client.fetch_forecast.side_effect = UpstreamTimeoutError("openweathermap")

        with pytest.raises(UpstreamTimeoutError):
            await lookup.get_forecast(ByCity(name="Tokyo"))
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_concurrent_misses_both_fetch_and_last_store_wins(self, lookup, client, cache):
        started = []
        stored = []
        both_started = asyncio.Event()

        async def slow_fetch(query):
            started.append(query)
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=2.0)
            payload = {"fetch": len(stored) + 1}
            stored.append(payload)
            return payload

        client.fetch_current.side_effect = slow_fetch
        query = ByCity(name="Tokyo")

        results = await asyncio.gather(lookup.get_current(query), lookup.get_current(query))

        assert [status for _, status in results] == [CACHE_MISS, CACHE_MISS]
        assert client.fetch_current.await_count == 2
        assert len(cache) == 1
        assert cache.lookup("current:Tokyo") is stored[-1]

    @pytest.mark.asyncio
    async def test_cache_metrics_recorded(self, lookup, metrics):
        query = ByCity(name="Tokyo")

        await lookup.get_current(query)
        await lookup.get_current(query)
        await lookup.get_current(query)

        registry = metrics.registry
        assert registry.get_sample_value("cache_misses_total", {"cache_type": "current"}) == 1
        assert registry.get_sample_value("cache_hits_total", {"cache_type": "current"}) == 2
        assert registry.get_sample_value("cache_entries") == 1

    @pytest.mark.asyncio
    async def test_works_without_metrics(self, cache, client):
        lookup = WeatherLookupService(cache, client)

        _, status = await lookup.get_current(ByCity(name="Tokyo"))

        assert status == CACHE_MISS
