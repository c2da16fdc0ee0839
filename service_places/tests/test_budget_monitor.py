"""
Unit tests for the budget monitor.
"""

from datetime import date, datetime, timezone

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_places.app.budget.monitor import BudgetMonitor
from shared.clock import FrozenClock

COST = 0.032


class TestBudgetMonitor:
    """Test cases for BudgetMonitor."""

    @pytest.fixture
    def clock(self):
        return FrozenClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))

    @pytest.fixture
    def monitor(self, clock):
        return BudgetMonitor(budget_limit=50.0, alert_thresholds=(50, 75, 90), clock=clock)

    def test_small_usage_raises_no_alert(self, monitor):
        """Test 16 calls stay far below every threshold."""
        alerts = []
        for _ in range(16):
            alerts.extend(monitor.charge(COST))

        state = monitor.status()
        assert alerts == []
        assert state.current_usage == pytest.approx(0.512)
        assert state.percentage_used == pytest.approx(1.024)

    def test_fifty_percent_alert_fires_exactly_once(self, monitor):
        """Test that call 782 crosses 50% and nothing else alerts."""
        alerts_by_call = {}
        for call in range(1, 800):
            alerts = monitor.charge(COST)
            if alerts:
                alerts_by_call[call] = [alert.threshold for alert in alerts]

        assert alerts_by_call == {782: [50]}
        assert monitor.status().alerts_sent == frozenset({50})

    def test_large_charge_crosses_thresholds_in_ascending_order(self, monitor):
        """Test that one charge can raise several alerts, lowest first."""
        alerts = monitor.charge(46.0)

        assert [alert.threshold for alert in alerts] == [50, 75, 90]
        assert alerts[0].state.percentage_used == pytest.approx(92.0)

    def test_thresholds_not_repeated_within_cycle(self, monitor):
        """Test that a threshold already reported stays silent."""
        assert [alert.threshold for alert in monitor.charge(26.0)] == [50]
        assert monitor.charge(1.0) == []
        assert [alert.threshold for alert in monitor.charge(12.0)] == [75]

    def test_zero_cost_charge_is_a_no_op(self, monitor):
        """Test that cached or failed calls do not move usage."""
        assert monitor.charge(0.0) == []
        assert monitor.status().current_usage == 0.0

    def test_negative_cost_rejected(self, monitor):
        """Test that costs are never negative."""
        with pytest.raises(ValueError):
            monitor.charge(-1.0)

    def test_days_remaining_and_projection(self, monitor):
        """Test derived fields on January 15th."""
        monitor.charge(14.0)

        state = monitor.status()
        assert state.days_remaining_in_month == 16
        assert state.projected_monthly_cost == pytest.approx(30.0)

    def test_projection_on_first_day_is_current_usage(self, clock):
        """Test that day one projects the usage so far."""
        clock.set(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))
        monitor = BudgetMonitor(budget_limit=50.0, clock=clock)
        monitor.charge(2.0)

        state = monitor.status()
        assert state.projected_monthly_cost == pytest.approx(2.0)
        assert state.days_remaining_in_month == 30

    def test_leap_year_february(self, clock):
        """Test month length handling in a leap year."""
        clock.set(datetime(2024, 2, 10, tzinfo=timezone.utc))
        monitor = BudgetMonitor(clock=clock)

        assert monitor.status().days_remaining_in_month == 19

    def test_rollover_happens_on_first_check_of_new_month(self, monitor, clock):
        """Test that the cycle marker trailing by a whole month triggers the reset at once."""
        monitor.charge(10.0)
        clock.set(datetime(2024, 1, 31, 23, 59, 59, tzinfo=timezone.utc))
        assert monitor.maybe_reset_for_new_month() is False

        clock.set(datetime(2024, 2, 1, 0, 0, tzinfo=timezone.utc))

        assert monitor.maybe_reset_for_new_month() is True
        assert monitor.status().current_usage == 0.0

    def test_month_rollover_resets_state(self, monitor, clock):
        """Test that a new month clears usage and alert history."""
        monitor.charge(30.0)
        assert monitor.maybe_reset_for_new_month() is False

        clock.set(datetime(2024, 2, 2, 8, 0, tzinfo=timezone.utc))

        assert monitor.maybe_reset_for_new_month() is True
        state = monitor.status()
        assert state.current_usage == 0.0
        assert state.alerts_sent == frozenset()
        assert monitor.daily_usage() == []
        assert monitor.cycle_start == date(2024, 2, 1)
        assert monitor.maybe_reset_for_new_month() is False

        assert [alert.threshold for alert in monitor.charge(25.0)] == [50]

    def test_daily_buckets_are_capped(self, monitor, clock):
        """Test that only the most recent days are kept."""
        for _ in range(35):
            monitor.charge(0.5)
            clock.advance(days=1)

        buckets = monitor.daily_usage()
        assert len(buckets) == 30
        assert buckets[0].day == date(2024, 1, 20)

    def test_same_day_charges_share_a_bucket(self, monitor, clock):
        """Test that charges on one day accumulate in one bucket."""
        monitor.charge(1.0)
        clock.advance(hours=3)
        monitor.charge(2.0)

        buckets = monitor.daily_usage()
        assert len(buckets) == 1
        assert buckets[0].cost == pytest.approx(3.0)

    def test_state_serialization(self, monitor):
        """Test the camelCase view exposed on the stats endpoint."""
        monitor.charge(40.0)

        body = monitor.status().to_dict()

        assert body["currentUsage"] == pytest.approx(40.0)
        assert body["budget"] == 50.0
        assert body["percentageUsed"] == pytest.approx(80.0)
        assert body["daysRemaining"] == 16
        assert body["alertsSent"] == [50, 75]

    def test_invalid_budget(self):
        """Test that the budget must be positive."""
        with pytest.raises(ValueError):
            BudgetMonitor(budget_limit=0)
