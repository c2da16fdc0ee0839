"""
Geo-quantized TTL cache for place searches.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from shared.clock import Clock, SystemClock
from shared.logging import get_logger

DEFAULT_TTL_SECONDS = 3600
COORDINATE_PRECISION = 2  # 0.01 degree, roughly 1.1 km


def quantize(value: float, precision: int = COORDINATE_PRECISION) -> float:
    """Snap a coordinate onto the cache grid."""
    # adding 0.0 folds -0.0 into 0.0 so both sides of the equator share a key
    return round(value, precision) + 0.0


def make_cache_key(latitude: float, longitude: float, radius: int, search_type: str) -> str:
    """Build the cache key for a search.

    Callers within about a kilometre of each other asking for the same
    radius and search type share one key.
    """
    lat = quantize(latitude)
    lon = quantize(longitude)
    return f"places:{lat:.{COORDINATE_PRECISION}f},{lon:.{COORDINATE_PRECISION}f}:{radius}:{search_type}"


@dataclass
class CacheEntry:
    """Cached provider payload with its absolute expiry."""
    payload: Any
    expires_at: datetime


class CacheStore:
    """In-memory cache with lazy and swept expiry."""

    def __init__(self, default_ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Optional[Clock] = None):
        self.default_ttl = timedelta(seconds=default_ttl_seconds)
        self.clock = clock or SystemClock()
        self.logger = get_logger("places.cache")
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached payload, or None on a miss or expired entry."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self.clock.now() > entry.expires_at:
            del self._entries[key]
            self.misses += 1
            self.logger.debug("Cache entry expired on read", cache_key=key)
            return None

        self.hits += 1
        return entry.payload

    def put(self, key: str, payload: Any, ttl_seconds: Optional[int] = None) -> CacheEntry:
        """Insert or overwrite ``key``."""
        ttl = timedelta(seconds=ttl_seconds) if ttl_seconds is not None else self.default_ttl
        entry = CacheEntry(payload=payload, expires_at=self.clock.now() + ttl)
        self._entries[key] = entry
        return entry

    def sweep(self) -> int:
        """Delete every expired entry. Returns how many were removed."""
        now = self.clock.now()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            self.logger.debug("Cache entries swept", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total, 4) if total else 0.0,
        }

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
