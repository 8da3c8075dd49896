"""
Weather service for the Weather Access layer.
"""

from typing import Any, Callable, Dict, Optional

import httpx
from fastapi import Depends, Query, Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.retry import RetryConfig

from service_weather.app.adapters import OpenWeatherClient
from service_weather.app.caching import ResponseCache
from service_weather.app.domain import parse_location_query, parse_search_query
from service_weather.app.weather import WeatherLookupService


def get_response_cache(request: Request) -> ResponseCache:
    """Process-wide response cache owned by the application."""
    return request.app.state.response_cache


def get_weather_client(request: Request) -> OpenWeatherClient:
    """Provider gateway owned by the application."""
    return request.app.state.openweather_client


def get_lookup_service(
    request: Request,
    cache: ResponseCache = Depends(get_response_cache),
    client: OpenWeatherClient = Depends(get_weather_client),
) -> WeatherLookupService:
    """Lookup service bound to the injected cache and gateway."""
    service: "WeatherAccessService" = request.app.state.weather_service
    return WeatherLookupService(
        cache,
        client,
        weather_ttl_seconds=service.config.weather_cache_ttl_seconds,
        search_ttl_seconds=service.config.search_cache_ttl_seconds,
        metrics=service.metrics,
    )


class WeatherAccessService(BaseService):
    """Weather service implementation."""

    def __init__(
        self,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], float]] = None,
        **config_overrides: Any,
    ):
        super().__init__("weather", 8000, **config_overrides)

        self.response_cache = ResponseCache(
            default_ttl=self.config.weather_cache_ttl_seconds,
            clock=clock,
        )
        self.openweather_client = OpenWeatherClient(
            self.config.openweather_api_key,
            base_url=self.config.openweather_base_url,
            geo_url=self.config.openweather_geo_url,
            units=self.config.openweather_units,
            lang=self.config.openweather_lang,
            timeout=self.config.upstream_timeout_seconds,
            retry_config=RetryConfig(
                max_attempts=self.config.upstream_max_attempts,
                base_delay=self.config.upstream_retry_base_delay,
            ),
            metrics=self.metrics,
            transport=transport,
        )

        if not self.openweather_client.configured:
            self.logger.warning("OPENWEATHER_API_KEY is not set; uncached lookups will fail")

        @self.app.on_event("shutdown")
        async def _shutdown():
            self.logger.info("Dropping response cache", **self.response_cache.stats())
            self.response_cache.clear()

        self._setup_weather_routes()

        # Expose service instance and collaborators via app state for injection/testing
        self.app.state.weather_service = self
        self.app.state.response_cache = self.response_cache
        self.app.state.openweather_client = self.openweather_client

    def _json_response(self, content: Dict[str, Any], ttl_seconds: int, cache_status: str) -> JSONResponse:
        return JSONResponse(
            content=content,
            headers={
                "Cache-Control": f"public, max-age={ttl_seconds}",
                "X-Cache": cache_status,
            },
        )

    async def _current(self, lookup: WeatherLookupService, lat, lon, city) -> JSONResponse:
        query = parse_location_query(lat, lon, city)
        snapshot, cache_status = await lookup.get_current(query)
        return self._json_response(snapshot.to_dict(), self.config.weather_cache_ttl_seconds, cache_status)

    async def _forecast(self, lookup: WeatherLookupService, lat, lon, city) -> JSONResponse:
        query = parse_location_query(lat, lon, city)
        snapshot, cache_status = await lookup.get_forecast(query)
        return self._json_response(snapshot.to_dict(), self.config.weather_cache_ttl_seconds, cache_status)

    async def _search(self, lookup: WeatherLookupService, q, limit) -> JSONResponse:
        query = parse_search_query(q, limit)
        result, cache_status = await lookup.search_cities(query)
        return self._json_response(result.to_dict(), self.config.search_cache_ttl_seconds, cache_status)

    def _setup_weather_routes(self):
        """Set up weather routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "weather",
                "message": "Weather Access - Weather Service",
                "version": "1.0.0"
            }

        @self.app.get("/api/weather/current")
        async def get_current_weather(
            lat: Optional[str] = Query(None),
            lon: Optional[str] = Query(None),
            city: Optional[str] = Query(None),
            lookup: WeatherLookupService = Depends(get_lookup_service),
        ):
            """Current conditions by coordinates or city name."""
            return await self._current(lookup, lat, lon, city)

        @self.app.get("/api/weather/forecast")
        async def get_weather_forecast(
            lat: Optional[str] = Query(None),
            lon: Optional[str] = Query(None),
            city: Optional[str] = Query(None),
            lookup: WeatherLookupService = Depends(get_lookup_service),
        ):
            """Current conditions plus 5-day and 24-sample forecasts."""
            return await self._forecast(lookup, lat, lon, city)

        @self.app.get("/api/weather/search")
        async def search_cities(
            q: Optional[str] = Query(None),
            limit: Optional[str] = Query(None),
            lookup: WeatherLookupService = Depends(get_lookup_service),
        ):
            """City search for the location picker."""
            return await self._search(lookup, q, limit)

        @self.app.get("/api/weather")
        async def weather_dispatch(
            endpoint: Optional[str] = Query(None),
            lat: Optional[str] = Query(None),
            lon: Optional[str] = Query(None),
            city: Optional[str] = Query(None),
            q: Optional[str] = Query(None),
            limit: Optional[str] = Query(None),
            lookup: WeatherLookupService = Depends(get_lookup_service),
        ):
            """Single entry point selecting current, forecast or search via ``endpoint``."""
            if endpoint == "search":
                return await self._search(lookup, q, limit)
            if endpoint == "forecast":
                return await self._forecast(lookup, lat, lon, city)
            return await self._current(lookup, lat, lon, city)

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report provider configuration and cache occupancy."""
        return {
            "openweathermap": "configured" if self.openweather_client.configured else "missing_api_key",
            "response_cache": self.response_cache.stats(),
        }


def create_app(**kwargs: Any):
    """Create FastAPI application."""
    service = WeatherAccessService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = WeatherAccessService()
    service.run()
