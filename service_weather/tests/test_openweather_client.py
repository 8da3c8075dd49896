"""
Unit tests for the OpenWeatherMap client.
"""

import asyncio

import pytest
import httpx

from service_weather.app.adapters import OpenWeatherClient
from service_weather.app.domain import ByCity, ByCoordinates, SearchQuery, parse_location_query
from shared.errors import (
    ConfigurationError,
    NotFoundError,
    RateLimitError,
    UnauthorizedError,
    UpstreamError,
    UpstreamTimeoutError,
)
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig
from shared.test_helpers import ProviderStub, WeatherPayloadFactory


TOKYO = parse_location_query(lat="35.6895", lon="139.6917")


class TestOpenWeatherClient:
    """Test cases for OpenWeatherClient."""

    @pytest.fixture
    def stub(self):
        return ProviderStub(routes={
            "/weather": (200, WeatherPayloadFactory.current()),
            "/forecast": (200, WeatherPayloadFactory.forecast([float(i) for i in range(40)])),
            "/direct": (200, [
                WeatherPayloadFactory.geocoding_entry(
                    "Tokyo", "JP", 35.6828, 139.759, state="Tokyo", local_names={"ja": "東京都"}
                ),
            ]),
        })

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("weather")

    @pytest.fixture
    def client(self, stub, metrics):
        return OpenWeatherClient("test-key", transport=stub.transport(), metrics=metrics)

    @pytest.mark.asyncio
    async def test_fetch_current_by_coordinates(self, client, stub):
        """Test current conditions use one call with the raw coordinate text."""
        snapshot = await client.fetch_current(TOKYO)

        assert snapshot.location.name == "Tokyo"
        assert snapshot.current.temperature == 21
        assert snapshot.forecast is None

        (call,) = stub.calls
        assert call.url.host == "api.openweathermap.org"
        assert call.url.path == "/data/2.5/weather"
        assert dict(call.url.params) == {
            "lat": "35.6895",
            "lon": "139.6917",
            "units": "metric",
            "lang": "ja",
            "appid": "test-key",
        }

    @pytest.mark.asyncio
    async def test_fetch_current_by_city(self, client, stub):
        await client.fetch_current(ByCity(name="Tokyo"))

        (call,) = stub.calls
        assert call.url.params["q"] == "Tokyo"
        assert "lat" not in call.url.params

    @pytest.mark.asyncio
    async def test_fetch_forecast_by_coordinates_makes_two_calls(self, client, stub):
        snapshot = await client.fetch_forecast(TOKYO)

        assert len(stub.calls_to("/weather")) == 1
        assert len(stub.calls_to("/forecast")) == 1
        assert len(snapshot.forecast) == 5
        assert len(snapshot.hourly) == 24
        assert snapshot.location.coordinates.lat == 35.6895

    @pytest.mark.asyncio
    async def test_fetch_forecast_by_city_resolves_coordinates_first(self, stub, metrics):
        stub.routes["/weather"] = (200, WeatherPayloadFactory.current(name="Osaka", lat=34.6937, lon=135.5023))
        client = OpenWeatherClient("test-key", transport=stub.transport(), metrics=metrics)

        snapshot = await client.fetch_forecast(ByCity(name="Osaka"))

        resolve, current = stub.calls_to("/weather")
        (forecast,) = stub.calls_to("/forecast")
        assert resolve.url.params["q"] == "Osaka"
        assert current.url.params["lat"] == "34.6937"
        assert forecast.url.params["lon"] == "135.5023"
        assert snapshot.location.name == "Osaka"
        assert snapshot.location.coordinates.lon == 135.5023

    @pytest.mark.asyncio
    async def test_forecast_fails_when_either_call_fails(self, client, stub):
        stub.routes["/forecast"] = (500, {"cod": "500", "message": "internal"})

        with pytest.raises(UpstreamError):
            await client.fetch_forecast(TOKYO)

    @pytest.mark.asyncio
    async def test_forecast_pair_is_in_flight_together(self, stub):
        """Test the current and forecast calls overlap instead of running back to back."""
        arrived = set()
        both_arrived = asyncio.Event()

        def gated(payload):
            async def _handle(request):
                arrived.add(request.url.path.rsplit("/", 1)[-1])
                if {"weather", "forecast"} <= arrived:
                    both_arrived.set()
                await asyncio.wait_for(both_arrived.wait(), timeout=2.0)
                return httpx.Response(200, json=payload)
            return _handle

        stub.routes["/weather"] = gated(WeatherPayloadFactory.current())
        stub.routes["/forecast"] = gated(WeatherPayloadFactory.forecast([float(i) for i in range(40)]))
        client = OpenWeatherClient("test-key", transport=stub.transport())

        snapshot = await client.fetch_forecast(TOKYO)

        assert arrived == {"weather", "forecast"}
        assert len(snapshot.forecast) == 5

    @pytest.mark.asyncio
    async def test_out_of_range_forecast_timestamp_is_upstream_error(self, client, stub):
        payload = WeatherPayloadFactory.forecast([5.0, 6.0])
        payload["list"][1]["dt"] = 10 ** 13
        stub.routes["/forecast"] = (200, payload)

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch_forecast(TOKYO)

        assert exc_info.value.code == "UPSTREAM_ERROR"
        assert exc_info.value.details == {"endpoint": "forecast", "error": "unexpected payload shape"}

    @pytest.mark.asyncio
    async def test_search_cities(self, client, stub):
        result = await client.search_cities(SearchQuery(query="Tokyo", limit=5))

        assert result.to_dict()["cities"][0]["displayName"] == "東京都, Tokyo, JP"
        (call,) = stub.calls
        assert call.url.path == "/geo/1.0/direct"
        assert call.url.params["q"] == "Tokyo"
        assert call.url.params["limit"] == "5"
        assert call.url.params["appid"] == "test-key"

    @pytest.mark.asyncio
    async def test_search_results_never_exceed_limit(self, client, stub):
        stub.routes["/direct"] = (200, [
            WeatherPayloadFactory.geocoding_entry(f"City {i}", "JP", 35.0, 139.0) for i in range(15)
        ])

        result = await client.search_cities(SearchQuery(query="City", limit=10))

        assert len(result.cities) == 10

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error_type", [
        (401, UnauthorizedError),
        (404, NotFoundError),
        (429, RateLimitError),
        (500, UpstreamError),
        (503, UpstreamError),
    ])
    async def test_provider_status_mapping(self, client, stub, status, error_type):
        stub.routes["/weather"] = (status, {"cod": str(status), "message": "provider says no"})

        with pytest.raises(error_type) as exc_info:
            await client.fetch_current(TOKYO)

        assert exc_info.value.status_code in (401, 404, 429, 500)
        assert exc_info.value.details["status_code"] == status

    @pytest.mark.asyncio
    async def test_timeout_maps_to_upstream_timeout(self, client, stub):
        def _timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        stub.routes["/weather"] = _timeout

        with pytest.raises(UpstreamTimeoutError) as exc_info:
            await client.fetch_current(TOKYO)

        assert exc_info.value.code == "UPSTREAM_TIMEOUT"
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_network_error_maps_to_upstream_error(self, client, stub):
        def _refused(request):
            raise httpx.ConnectError("connection refused", request=request)

        stub.routes["/weather"] = _refused

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch_current(TOKYO)

        assert exc_info.value.code == "UPSTREAM_ERROR"
        assert len(stub.calls) == 1

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried_when_configured(self, stub):
        attempts = []

        def _flaky(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200, json=WeatherPayloadFactory.current())

        stub.routes["/weather"] = _flaky
        client = OpenWeatherClient(
            "test-key",
            transport=stub.transport(),
            retry_config=RetryConfig(max_attempts=2, base_delay=0.0, jitter=False),
        )

        snapshot = await client.fetch_current(TOKYO)

        assert snapshot.location.name == "Tokyo"
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_http_errors_are_not_retried(self, stub):
        stub.routes["/weather"] = (500, {"cod": "500"})
        client = OpenWeatherClient(
            "test-key",
            transport=stub.transport(),
            retry_config=RetryConfig(max_attempts=3, base_delay=0.0, jitter=False),
        )

        with pytest.raises(UpstreamError):
            await client.fetch_current(TOKYO)

        assert len(stub.calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_upstream_error(self, client, stub):
        stub.routes["/weather"] = lambda request: httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(UpstreamError):
            await client.fetch_current(TOKYO)

    @pytest.mark.asyncio
    async def test_malformed_payload_is_upstream_error(self, client, stub):
        stub.routes["/weather"] = (200, {"cod": 200, "name": "Tokyo"})

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch_current(TOKYO)

        assert exc_info.value.details["error"] == "unexpected payload shape"

    @pytest.mark.asyncio
    async def test_malformed_geocoding_payload_is_upstream_error(self, client, stub):
        stub.routes["/direct"] = (200, {"not": "a list"})

        with pytest.raises(UpstreamError):
            await client.search_cities(SearchQuery(query="Tokyo", limit=5))

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_without_calling_provider(self, stub):
        client = OpenWeatherClient(None, transport=stub.transport())

        assert client.configured is False
        with pytest.raises(ConfigurationError):
            await client.fetch_current(TOKYO)
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_upstream_outcomes_are_recorded(self, client, stub, metrics):
        stub.routes["/forecast"] = (429, {"cod": 429})

        await client.fetch_current(ByCoordinates(lat="1", lon="2", latitude=1.0, longitude=2.0))
        with pytest.raises(RateLimitError):
            await client.fetch_forecast(TOKYO)

        def sample(endpoint, outcome):
            return metrics.registry.get_sample_value(
                "upstream_requests_total", {"endpoint": endpoint, "outcome": outcome}
            )

        assert sample("weather", "200") >= 1
        assert sample("forecast", "429") == 1
