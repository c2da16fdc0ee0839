"""
Fixed-window rate limiter for the Places Gateway.

Windows start on a caller's first request and do not slide: a caller can
land up to twice the limit in quick succession across a window boundary.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from shared.clock import Clock, SystemClock
from shared.logging import get_logger


@dataclass
class RateLimitEntry:
    """Per-caller counter for the current window."""
    count: int
    window_reset_at: datetime


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single admission check."""
    allowed: bool
    remaining: int
    limit: int
    window_reset_at: datetime
    reset_in_seconds: int

    @property
    def retry_after(self) -> int:
        return self.reset_in_seconds if not self.allowed else 0


class FixedWindowRateLimiter:
    """In-memory fixed-window limiter keyed by caller."""

    def __init__(self, max_requests: int = 5, window_seconds: int = 3600, clock: Optional[Clock] = None):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window = timedelta(seconds=window_seconds)
        self.clock = clock or SystemClock()
        self.logger = get_logger("places.rate_limiter")
        self._entries: Dict[str, RateLimitEntry] = {}

    def admit(self, key: str) -> RateLimitDecision:
        """Count a request against ``key`` and decide whether it may proceed."""
        now = self.clock.now()
        entry = self._entries.get(key)

        if entry is None or now > entry.window_reset_at:
            entry = RateLimitEntry(count=1, window_reset_at=now + self.window)
            self._entries[key] = entry
            return self._decision(True, self.max_requests - 1, entry, now)

        if entry.count < self.max_requests:
            entry.count += 1
            return self._decision(True, self.max_requests - entry.count, entry, now)

        self.logger.warning(
            "Rate limit exceeded",
            caller_key=key,
            count=entry.count,
            limit=self.max_requests,
            window_reset_at=entry.window_reset_at.isoformat(),
        )
        return self._decision(False, 0, entry, now)

    def _decision(self, allowed: bool, remaining: int, entry: RateLimitEntry, now: datetime) -> RateLimitDecision:
        seconds_left = (entry.window_reset_at - now).total_seconds()
        return RateLimitDecision(
            allowed=allowed,
            remaining=remaining,
            limit=self.max_requests,
            window_reset_at=entry.window_reset_at,
            reset_in_seconds=max(1, math.ceil(seconds_left)),
        )

    def sweep(self) -> int:
        """Drop entries whose window has passed. Returns how many were removed."""
        now = self.clock.now()
        expired = [key for key, entry in self._entries.items() if now > entry.window_reset_at]
        for key in expired:
            del self._entries[key]
        if expired:
            self.logger.debug("Rate limit entries swept", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def get_entry(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)
