"""
OpenWeatherMap client for the Weather Service.
"""

import asyncio
import time
from typing import Any, Dict, List, NoReturn, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from shared.errors import (
    ConfigurationError,
    NotFoundError,
    RateLimitError,
    UnauthorizedError,
    UpstreamError,
    UpstreamTimeoutError,
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError, call_with_retry

from service_weather.app.domain.models import CitySearchResponse, Coordinates, Location, WeatherSnapshot
from service_weather.app.domain.provider_schemas import CurrentWeatherPayload, ForecastPayload, GeocodingEntry
from service_weather.app.domain.requests import ByCoordinates, LocationQuery, SearchQuery
from service_weather.app.domain.transform import build_city_results, build_current_snapshot, build_forecast_snapshot

SERVICE_NAME = "openweathermap"

_GEOCODING_ADAPTER = TypeAdapter(List[GeocodingEntry])

ModelT = TypeVar("ModelT", bound=BaseModel)


class OpenWeatherClient:
    """
    Fetch-and-transform gateway to OpenWeatherMap.

    Each public method issues the provider calls for one request kind,
    validates the JSON against strict schemas and returns the unified model.
    Provider statuses map to domain errors: 401 -> UnauthorizedError,
    404 -> NotFoundError, 429 -> RateLimitError, anything else ->
    UpstreamError. The client never touches the response cache.

    A new HTTP session is opened per call; ``transport`` lets tests swap in
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        geo_url: str = "https://api.openweathermap.org/geo/1.0",
        units: str = "metric",
        lang: str = "ja",
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.geo_url = geo_url.rstrip("/")
        self.units = units
        self.lang = lang
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig(max_attempts=1)
        self.metrics = metrics
        self.transport = transport
        self.logger = get_logger("weather.openweather_client")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def fetch_current(self, query: LocationQuery) -> WeatherSnapshot:
        """Current conditions for coordinates or a city name (one call)."""
        payload = await self._get_current(self._location_params(query))
        return build_current_snapshot(payload)

    async def fetch_forecast(self, query: LocationQuery) -> WeatherSnapshot:
        """
        Current conditions plus daily/hourly forecast.

        A city is first resolved to coordinates with a current-weather call.
        The current and forecast calls for the coordinates then run
        concurrently; if either fails the whole lookup fails.
        """
        if isinstance(query, ByCoordinates):
            params: Dict[str, Any] = {"lat": query.lat, "lon": query.lon}
            coordinates = Coordinates(lat=query.latitude, lon=query.longitude)
            location = None
        else:
            resolved = await self._get_current({"q": query.name})
            params = {"lat": resolved.coord.lat, "lon": resolved.coord.lon}
            coordinates = Coordinates(lat=resolved.coord.lat, lon=resolved.coord.lon)
            location = Location(name=resolved.name, country=resolved.sys.country, coordinates=coordinates)

        current, forecast = await asyncio.gather(
            self._get_current(params),
            self._get_forecast(params),
        )

        if location is None:
            location = Location(name=current.name, country=current.sys.country, coordinates=coordinates)

        return build_forecast_snapshot(current, forecast, location)

    async def search_cities(self, query: SearchQuery) -> CitySearchResponse:
        """Geocode a free-text query into at most ``query.limit`` cities."""
        data = await self._request(
            "geocoding",
            f"{self.geo_url}/direct",
            {"q": query.query, "limit": query.limit},
        )
        entries = self._parse_list(data, "geocoding")
        return CitySearchResponse(cities=build_city_results(entries, query.limit))

    async def _get_current(self, params: Dict[str, Any]) -> CurrentWeatherPayload:
        data = await self._request("weather", f"{self.base_url}/weather", self._weather_params(params))
        return self._parse(CurrentWeatherPayload, data, "weather")

    async def _get_forecast(self, params: Dict[str, Any]) -> ForecastPayload:
        data = await self._request("forecast", f"{self.base_url}/forecast", self._weather_params(params))
        return self._parse(ForecastPayload, data, "forecast")

    def _location_params(self, query: LocationQuery) -> Dict[str, Any]:
        if isinstance(query, ByCoordinates):
            return {"lat": query.lat, "lon": query.lon}
        return {"q": query.name}

    def _weather_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {**params, "units": self.units, "lang": self.lang}

    async def _request(self, endpoint: str, url: str, params: Dict[str, Any]) -> Any:
        """Issue one GET against the provider and return the decoded JSON body."""
        if not self.api_key:
            raise ConfigurationError()

        async def _send() -> httpx.Response:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                return await client.get(url, params={**params, "appid": self.api_key})

        self.logger.debug("Calling weather provider", endpoint=endpoint, url=url, params=params)
        start = time.perf_counter()
        try:
            response = await call_with_retry(
                _send,
                exceptions=(httpx.TransportError,),
                config=self.retry_config,
            )
        except RetryError as exc:
            error = exc.last_exception
            if isinstance(error, httpx.TimeoutException):
                self._record(endpoint, "timeout", start)
                self.logger.error("Weather provider timed out", endpoint=endpoint, attempts=exc.attempts)
                raise UpstreamTimeoutError(SERVICE_NAME, details={"endpoint": endpoint}) from error

            self._record(endpoint, "network_error", start)
            self.logger.error("Weather provider unreachable", endpoint=endpoint, error=str(error))
            raise UpstreamError(SERVICE_NAME, details={"endpoint": endpoint, "error": str(error)}) from error

        self._record(endpoint, str(response.status_code), start)
        self._raise_for_status(endpoint, response)

        try:
            return response.json()
        except ValueError as exc:
            self.logger.error("Weather provider returned invalid JSON", endpoint=endpoint)
            raise UpstreamError(SERVICE_NAME, details={"endpoint": endpoint, "error": "invalid JSON"}) from exc

    def _raise_for_status(self, endpoint: str, response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        details = {"endpoint": endpoint, "status_code": status}
        if status == 401:
            self.logger.error("Weather provider rejected the API key", endpoint=endpoint)
            raise UnauthorizedError(details=details)
        if status == 404:
            self.logger.info("Location not found upstream", endpoint=endpoint)
            raise NotFoundError(details=details)
        if status == 429:
            self.logger.warning("Weather provider rate limit reached", endpoint=endpoint)
            raise RateLimitError(details=details)

        self.logger.error(
            "Weather provider request failed",
            endpoint=endpoint,
            status_code=status,
            response=response.text[:500],
        )
        raise UpstreamError(SERVICE_NAME, details=details)

    def _parse(self, model: Type[ModelT], data: Any, endpoint: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            self._reject_payload(endpoint, exc)

    def _parse_list(self, data: Any, endpoint: str) -> List[GeocodingEntry]:
        try:
            return _GEOCODING_ADAPTER.validate_python(data)
        except ValidationError as exc:
            self._reject_payload(endpoint, exc)

    def _reject_payload(self, endpoint: str, exc: ValidationError) -> NoReturn:
        self.logger.error(
            "Weather provider payload failed validation",
            endpoint=endpoint,
            errors=exc.error_count(),
        )
        raise UpstreamError(
            SERVICE_NAME,
            details={"endpoint": endpoint, "error": "unexpected payload shape"},
        ) from exc

    def _record(self, endpoint: str, outcome: str, start: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("upstream_requests_total", endpoint=endpoint, outcome=outcome)
        self.metrics.observe_histogram(
            "upstream_request_duration_seconds",
            time.perf_counter() - start,
            endpoint=endpoint,
        )
