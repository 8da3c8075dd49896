"""
Weather lookup layer for the Weather Service.
"""

from .service import CACHE_HIT, CACHE_MISS, WeatherLookupService

__all__ = ["CACHE_HIT", "CACHE_MISS", "WeatherLookupService"]
