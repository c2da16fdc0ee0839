"""
In-memory usage tracker for metered upstream calls.

Keeps a capped, append-only log of calls (oldest evicted first) and
aggregates it on demand. State is lost on restart; the provider's billing
console remains the source of truth.
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Deque, Dict, List, Optional

from shared.clock import Clock, SystemClock
from shared.logging import get_logger

GOOGLE_PLACES_SOURCE = "google-places"
MAX_STORED_CALLS = 10000
# Nearby Search: $32 per 1000 requests
DEFAULT_COST_PER_REQUEST = 32 / 1000


@dataclass(frozen=True)
class ApiCallRecord:
    """One upstream call, cached or not."""
    timestamp: datetime
    source_name: str
    endpoint_label: str
    estimated_cost: float
    was_cached: bool
    caller_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "sourceName": self.source_name,
            "endpointLabel": self.endpoint_label,
            "estimatedCost": self.estimated_cost,
            "wasCached": self.was_cached,
            "callerKey": self.caller_key,
        }


class UsageTracker:
    """Capped FIFO log of upstream calls with aggregation helpers."""

    def __init__(
        self,
        max_stored_calls: int = MAX_STORED_CALLS,
        cost_per_request: float = DEFAULT_COST_PER_REQUEST,
        metered_source: str = GOOGLE_PLACES_SOURCE,
        clock: Optional[Clock] = None,
    ):
        if max_stored_calls <= 0:
            raise ValueError("max_stored_calls must be positive")
        self.max_stored_calls = max_stored_calls
        self.cost_per_request = cost_per_request
        self.metered_source = metered_source
        self.clock = clock or SystemClock()
        self.logger = get_logger("places.usage_tracker")
        self._calls: Deque[ApiCallRecord] = deque(maxlen=max_stored_calls)

    def cost_for(self, source_name: str, was_cached: bool, billable: bool = True) -> float:
        """Estimated cost of a single call."""
        if source_name == self.metered_source and not was_cached and billable:
            return self.cost_per_request
        return 0.0

    def record(
        self,
        source_name: str,
        endpoint_label: str,
        was_cached: bool = False,
        caller_key: Optional[str] = None,
        *,
        billable: bool = True,
    ) -> ApiCallRecord:
        """Append a call record, evicting the oldest one when full.

        ``billable=False`` logs a call the provider answered without
        confirming a charge (an error response), so it counts but costs 0.
        """
        call = ApiCallRecord(
            timestamp=self.clock.now(),
            source_name=source_name,
            endpoint_label=endpoint_label,
            estimated_cost=self.cost_for(source_name, was_cached, billable),
            was_cached=was_cached,
            caller_key=caller_key,
        )
        self._calls.append(call)

        if was_cached:
            self.logger.info(
                "API usage recorded",
                source=source_name,
                endpoint=endpoint_label,
                cached=True,
            )
        else:
            self.logger.info(
                "API usage recorded",
                source=source_name,
                endpoint=endpoint_label,
                cached=False,
                cost=round(call.estimated_cost, 6),
                caller_key=caller_key or "unknown",
            )
        return call

    def stats(self, window_days: int = 30) -> Dict[str, Any]:
        """Aggregate calls made in the trailing ``window_days``."""
        cutoff = self.clock.now() - timedelta(days=window_days)
        recent_calls = [call for call in self._calls if call.timestamp > cutoff]

        calls_by_day: Dict[str, int] = {}
        calls_by_source: Dict[str, int] = {}
        for call in recent_calls:
            day = call.timestamp.date().isoformat()
            calls_by_day[day] = calls_by_day.get(day, 0) + 1
            calls_by_source[call.source_name] = calls_by_source.get(call.source_name, 0) + 1

        return {
            "windowDays": window_days,
            "totalCalls": len(recent_calls),
            "cachedCalls": sum(1 for call in recent_calls if call.was_cached),
            "estimatedCost": round(sum(call.estimated_cost for call in recent_calls), 6),
            "callsByDay": calls_by_day,
            "callsBySource": calls_by_source,
        }

    def recent(self, limit: int = 100) -> List[ApiCallRecord]:
        """Last ``limit`` records, most recent first."""
        if limit <= 0:
            return []
        calls = list(self._calls)
        return list(reversed(calls[-limit:]))

    def __len__(self) -> int:
        return len(self._calls)
