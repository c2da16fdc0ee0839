"""
Unit tests for the usage tracker.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_places.app.usage.tracker import GOOGLE_PLACES_SOURCE, UsageTracker
from shared.clock import FrozenClock


class TestUsageTracker:
    """Test cases for UsageTracker."""

    @pytest.fixture
    def clock(self):
        return FrozenClock()

    @pytest.fixture
    def tracker(self, clock):
        return UsageTracker(max_stored_calls=100, cost_per_request=0.032, clock=clock)

    def test_uncached_metered_call_costs_per_request(self, tracker, clock):
        """Test cost of a live provider call."""
        record = tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch", caller_key="203.0.113.7")

        assert record.estimated_cost == pytest.approx(0.032)
        assert record.was_cached is False
        assert record.timestamp == clock.now()
        assert record.to_dict()["callerKey"] == "203.0.113.7"

    def test_cached_call_is_free(self, tracker):
        """Test that cache hits never cost anything."""
        record = tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch", was_cached=True)

        assert record.estimated_cost == 0.0

    def test_other_sources_are_free(self, tracker):
        """Test that only the metered source is priced."""
        record = tracker.record("open-street-map", "search")

        assert record.estimated_cost == 0.0

    def test_non_billable_call_is_free(self, tracker):
        """Test that failed provider calls are recorded at zero cost."""
        record = tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch", billable=False)

        assert record.estimated_cost == 0.0
        assert len(tracker) == 1

    def test_capacity_evicts_oldest_first(self, clock):
        """Test FIFO eviction once the log is full."""
        tracker = UsageTracker(max_stored_calls=3, clock=clock)
        for caller in ["a", "b", "c", "d"]:
            tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch", caller_key=caller)

        assert len(tracker) == 3
        assert [call.caller_key for call in tracker.recent()] == ["d", "c", "b"]

    def test_recent_is_most_recent_first_and_limited(self, tracker, clock):
        """Test ordering and limit of recent()."""
        for index in range(5):
            tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch", caller_key=str(index))
            clock.advance(seconds=1)

        recent = tracker.recent(limit=2)

        assert [call.caller_key for call in recent] == ["4", "3"]
        assert tracker.recent(limit=0) == []

    def test_stats_aggregates_within_window(self, tracker, clock):
        """Test window filtering and aggregation."""
        tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch")
        clock.advance(days=31)
        tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch")
        tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch", was_cached=True)
        clock.advance(days=1)
        tracker.record("open-street-map", "search")

        stats = tracker.stats()

        assert stats["windowDays"] == 30
        assert stats["totalCalls"] == 3
        assert stats["cachedCalls"] == 1
        assert stats["estimatedCost"] == pytest.approx(0.032)
        assert stats["callsByDay"] == {"2024-02-15": 2, "2024-02-16": 1}
        assert stats["callsBySource"] == {GOOGLE_PLACES_SOURCE: 2, "open-street-map": 1}

    def test_stats_window_is_exclusive_of_cutoff(self, tracker, clock):
        """Test that a call exactly window_days old is excluded."""
        tracker.record(GOOGLE_PLACES_SOURCE, "nearbysearch")
        clock.advance(days=7)

        assert tracker.stats(window_days=7)["totalCalls"] == 0
        assert tracker.stats(window_days=8)["totalCalls"] == 1

    def test_invalid_capacity(self):
        """Test that capacity must be positive."""
        with pytest.raises(ValueError):
            UsageTracker(max_stored_calls=0)
