"""
Shared error handling for the Weather Access service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body returned to the presentation layer."""

    error: str


class WeatherServiceException(Exception):
    """Base exception for Weather Access services."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message)


class ClientValidationError(WeatherServiceException):
    """Missing or malformed request parameters."""

    status_code = 400

    def __init__(self, message: str = "リクエストパラメータが不正です", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(WeatherServiceException):
    """The requested location is unknown to the provider."""

    status_code = 404

    def __init__(self, message: str = "指定された都市が見つかりません", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class UnauthorizedError(WeatherServiceException):
    """The provider rejected our API key."""

    status_code = 401

    def __init__(self, message: str = "APIキーが無効です", details: Optional[Dict[str, Any]] = None):
        super().__init__("UNAUTHORIZED", message, details)


class RateLimitError(WeatherServiceException):
    """The provider is throttling us."""

    status_code = 429

    def __init__(
        self,
        message: str = "APIレート制限に達しました。しばらく後でお試しください。",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("RATE_LIMITED", message, details)


class UpstreamError(WeatherServiceException):
    """Any other upstream fault, including malformed payloads."""

    status_code = 500

    def __init__(
        self,
        service: str,
        message: str = "天気情報の取得に失敗しました。しばらく後でお試しください。",
        details: Optional[Dict[str, Any]] = None,
        code: str = "UPSTREAM_ERROR",
    ):
        self.service = service
        super().__init__(code, message, details)


class UpstreamTimeoutError(UpstreamError):
    """The provider did not answer within the configured timeout."""

    retryable = True

    def __init__(
        self,
        service: str,
        message: str = "天気情報サービスが応答しませんでした。しばらく後でお試しください。",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(service, message, details, code="UPSTREAM_TIMEOUT")


class ConfigurationError(WeatherServiceException):
    """Required configuration is missing."""

    status_code = 500

    def __init__(self, message: str = "OpenWeatherMap APIキーが設定されていません", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)
