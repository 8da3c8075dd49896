"""
Shared configuration management for the Weather Access service.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Upstream provider
    openweather_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("openweather_api_key", "OPENWEATHER_API_KEY"),
    )
    openweather_base_url: str = Field(default="https://api.openweathermap.org/data/2.5")
    openweather_geo_url: str = Field(default="https://api.openweathermap.org/geo/1.0")
    openweather_units: str = Field(default="metric")
    openweather_lang: str = Field(default="ja")

    # Response cache
    weather_cache_ttl_seconds: int = Field(default=300, ge=1)
    search_cache_ttl_seconds: int = Field(default=1800, ge=1)

    # Outbound calls
    upstream_timeout_seconds: float = Field(default=10.0, gt=0)
    upstream_max_attempts: int = Field(default=1, ge=1)
    upstream_retry_base_delay: float = Field(default=0.5, ge=0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
