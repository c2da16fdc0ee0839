"""
Monthly budget monitor for metered upstream spend.

Accumulates estimated cost for the current calendar month, derives usage
percentage, days remaining and a linear projection, and reports each alert
threshold the first time usage crosses it. Delivery of those alerts is left
to a notifier so this class stays free of I/O.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from shared.clock import Clock, SystemClock
from shared.logging import get_logger

DEFAULT_MONTHLY_BUDGET = 50.0
DEFAULT_ALERT_THRESHOLDS = (50, 75, 90)
MAX_DAYS_TRACKED = 30
PROJECTION_DAYS = 30


@dataclass
class DailyUsage:
    """Spend attributed to one calendar day."""
    day: date
    cost: float

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.day.isoformat(), "cost": round(self.cost, 6)}


@dataclass(frozen=True)
class BudgetState:
    """Point-in-time view of the billing cycle."""
    current_usage: float
    budget_limit: float
    percentage_used: float
    days_remaining_in_month: int
    projected_monthly_cost: float
    alerts_sent: FrozenSet[int] = field(default_factory=frozenset)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentUsage": round(self.current_usage, 6),
            "budget": self.budget_limit,
            "percentageUsed": round(self.percentage_used, 4),
            "daysRemaining": self.days_remaining_in_month,
            "projectedMonthlyCost": round(self.projected_monthly_cost, 6),
            "alertsSent": sorted(self.alerts_sent),
        }


@dataclass(frozen=True)
class BudgetAlert:
    """A threshold crossed by a charge, with the state that crossed it."""
    threshold: int
    state: BudgetState


class BudgetMonitor:
    """Running-total budget tracker with one-shot threshold alerts."""

    def __init__(
        self,
        budget_limit: float = DEFAULT_MONTHLY_BUDGET,
        alert_thresholds: Iterable[int] = DEFAULT_ALERT_THRESHOLDS,
        clock: Optional[Clock] = None,
        max_days_tracked: int = MAX_DAYS_TRACKED,
    ):
        if budget_limit <= 0:
            raise ValueError("budget_limit must be positive")
        self.budget_limit = budget_limit
        self.alert_thresholds = sorted(set(alert_thresholds))
        self.clock = clock or SystemClock()
        self.max_days_tracked = max_days_tracked
        self.logger = get_logger("places.budget")

        self._current_usage = 0.0
        self._alerts_sent: Set[int] = set()
        self._daily_usage: List[DailyUsage] = []
        self._cycle_start = self._month_start(self.clock.now().date())

    @staticmethod
    def _month_start(day: date) -> date:
        return day.replace(day=1)

    def charge(self, cost: float) -> List[BudgetAlert]:
        """Add ``cost`` to the cycle and return any newly crossed thresholds.

        Thresholds are checked in ascending order; each one is reported at
        most once per cycle, even if usage later drops back below it.
        """
        if cost < 0:
            raise ValueError("cost must not be negative")

        today = self.clock.now().date()
        self._current_usage += cost
        self._add_daily(today, cost)

        percentage_used = (self._current_usage / self.budget_limit) * 100
        crossed = [
            threshold for threshold in self.alert_thresholds
            if percentage_used >= threshold and threshold not in self._alerts_sent
        ]
        if not crossed:
            return []

        self._alerts_sent.update(crossed)
        state = self.status()
        return [BudgetAlert(threshold=threshold, state=state) for threshold in crossed]

    def _add_daily(self, today: date, cost: float) -> None:
        for bucket in self._daily_usage:
            if bucket.day == today:
                bucket.cost += cost
                return
        self._daily_usage.append(DailyUsage(day=today, cost=cost))
        if len(self._daily_usage) > self.max_days_tracked:
            self._daily_usage.pop(0)

    def status(self) -> BudgetState:
        """Snapshot of the cycle, derived against the current clock."""
        today = self.clock.now().date()
        days_in_month = calendar.monthrange(today.year, today.month)[1]
        days_remaining = days_in_month - today.day
        days_elapsed = today.day - 1

        if days_elapsed >= 1:
            projected = (self._current_usage / days_elapsed) * PROJECTION_DAYS
        else:
            projected = self._current_usage

        return BudgetState(
            current_usage=self._current_usage,
            budget_limit=self.budget_limit,
            percentage_used=(self._current_usage / self.budget_limit) * 100,
            days_remaining_in_month=days_remaining,
            projected_monthly_cost=projected,
            alerts_sent=frozenset(self._alerts_sent),
        )

    def maybe_reset_for_new_month(self) -> bool:
        """Start a new cycle if the calendar month changed since the last reset.

        Safe to call any number of times; only the first call in a new month
        resets anything.

        The cycle marker is always the first day of a month, so once the
        current month start moves past it the gap is at least 28 days and
        the "one full day behind" condition is already met. The reset
        therefore happens on the first check in the new month, with no
        extra grace day.
        """
        month_start = self._month_start(self.clock.now().date())
        if month_start <= self._cycle_start:
            return False

        self.logger.info(
            "Budget cycle reset",
            previous_cycle=self._cycle_start.isoformat(),
            new_cycle=month_start.isoformat(),
            closing_usage=round(self._current_usage, 6),
        )
        self.reset()
        self._cycle_start = month_start
        return True

    def reset(self) -> None:
        """Clear usage, alert history and daily buckets."""
        self._current_usage = 0.0
        self._alerts_sent.clear()
        self._daily_usage.clear()

    @property
    def cycle_start(self) -> date:
        return self._cycle_start

    def daily_usage(self) -> List[DailyUsage]:
        return list(self._daily_usage)
