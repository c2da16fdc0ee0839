"""
Gateway caching package.

Provides the in-memory cache that collapses nearby searches onto one
provider call. Entries are short-lived and expire both on read and via the
periodic sweep.
"""

from .geo_cache import CacheEntry, CacheStore, make_cache_key, quantize

__all__ = ["CacheEntry", "CacheStore", "make_cache_key", "quantize"]
