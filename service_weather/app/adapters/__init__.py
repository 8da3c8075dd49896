"""
Adapters package for the Weather Service.

Contains the HTTP client wrapper for the upstream weather provider. The
adapter encapsulates:

- Endpoint URLs and request shapes
- Timeout and retry policy
- Mapping of provider statuses to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .openweather_client import OpenWeatherClient

__all__ = ["OpenWeatherClient"]
