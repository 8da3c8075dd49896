"""
Weather service caching package.

Holds the process-wide response cache and the key derivation used by the
lookup service. Entries expire lazily on lookup; nothing is persisted.
"""

from .keys import location_key, search_key
from .response_cache import CacheEntry, ResponseCache

__all__ = ["CacheEntry", "ResponseCache", "location_key", "search_key"]
