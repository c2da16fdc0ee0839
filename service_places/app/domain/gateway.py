"""
Request orchestration for the places gateway.

``PlacesGateway`` owns one instance of every cost-control component and
runs each search through them in a fixed order:

    validate -> rate limit -> cache lookup -> upstream call -> accounting -> respond

Any failure ends the request at the step that raised. Nothing here retries.

Concurrent requests only interleave while awaiting the upstream call, so
two identical searches can both miss the cache and both reach the
provider. That duplicate spend is accepted; there is no in-flight
coalescing.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from shared.clock import Clock, SystemClock
from shared.config import BaseConfig
from shared.errors import ConfigurationError, RateLimitExceeded, UpstreamError
from shared.logging import get_logger, set_caller_context
from shared.metrics import MetricsCollector

from ..adapters.places_client import GooglePlacesClient, PlacesProvider
from ..budget.monitor import BudgetAlert, BudgetMonitor
from ..budget.notifiers import Notifier, build_notifier
from ..caching.geo_cache import CacheStore, make_cache_key
from ..identity.client_identifier import ClientIdentifier
from ..ratelimit.fixed_window import FixedWindowRateLimiter, RateLimitDecision
from ..usage.tracker import GOOGLE_PLACES_SOURCE, UsageTracker
from .search_request import DEFAULT_RADIUS_METERS, PlaceSearchQuery, parse_search_query

ENDPOINT_LABEL = "nearbysearch"
RECENT_CALLS_LIMIT = 50
NOT_CONFIGURED_MESSAGE = (
    "Google Places API is not configured. Please set GOOGLE_PLACES_API_KEY environment variable."
)
USAGE_NOTE = (
    "This is in-memory data and resets when the service restarts. "
    "For production monitoring, use the provider's billing console."
)


@dataclass(frozen=True)
class SearchRequest:
    """Raw inbound search, exactly as received."""
    latitude: Optional[str]
    longitude: Optional[str]
    radius: Optional[str] = None
    search_type: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    peer_address: Optional[str] = None


@dataclass
class SearchOutcome:
    """Successful search result plus the metadata the HTTP layer exposes."""
    results: List[Dict[str, Any]]
    cached: bool
    caller_key: str
    cache_key: str
    rate_limit: RateLimitDecision
    alerts: List[BudgetAlert] = field(default_factory=list)


class PlacesGateway:
    """Cost-governance gateway in front of a metered places provider."""

    def __init__(
        self,
        provider: Optional[PlacesProvider],
        *,
        rate_limiter: FixedWindowRateLimiter,
        cache: CacheStore,
        usage: UsageTracker,
        budget: BudgetMonitor,
        notifier: Notifier,
        identifier: Optional[ClientIdentifier] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
        upstream_timeout: float = 8.0,
        default_radius: int = DEFAULT_RADIUS_METERS,
        source_name: str = GOOGLE_PLACES_SOURCE,
    ):
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.usage = usage
        self.budget = budget
        self.notifier = notifier
        self.identifier = identifier or ClientIdentifier()
        self.metrics = metrics
        self.clock = clock or SystemClock()
        self.upstream_timeout = upstream_timeout
        self.default_radius = default_radius
        self.source_name = source_name
        self.logger = get_logger("places.gateway")

    @classmethod
    def from_config(
        cls,
        config: BaseConfig,
        *,
        provider: Optional[PlacesProvider] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "PlacesGateway":
        """Wire a gateway from settings, with fresh state for every component."""
        clock = clock or SystemClock()
        if provider is None and config.google_places_api_key:
            provider = GooglePlacesClient(
                config.google_places_api_key,
                base_url=config.google_places_base_url,
                timeout=config.upstream_timeout_seconds,
            )

        return cls(
            provider,
            rate_limiter=FixedWindowRateLimiter(
                max_requests=config.rate_limit_max_requests,
                window_seconds=config.rate_limit_window_seconds,
                clock=clock,
            ),
            cache=CacheStore(default_ttl_seconds=config.cache_ttl_seconds, clock=clock),
            usage=UsageTracker(
                max_stored_calls=config.max_stored_calls,
                cost_per_request=config.cost_per_request_usd,
                clock=clock,
            ),
            budget=BudgetMonitor(
                budget_limit=config.monthly_budget_usd,
                alert_thresholds=config.budget_alert_thresholds,
                clock=clock,
            ),
            notifier=notifier or build_notifier(config),
            metrics=metrics,
            clock=clock,
            upstream_timeout=config.upstream_timeout_seconds,
            default_radius=config.default_radius_meters,
        )

    async def handle(self, request: SearchRequest) -> SearchOutcome:
        """Run one search through validation, admission, cache and accounting."""
        query = parse_search_query(
            request.latitude,
            request.longitude,
            request.radius,
            request.search_type,
            default_radius=self.default_radius,
        )

        if self.provider is None:
            raise ConfigurationError(NOT_CONFIGURED_MESSAGE)

        caller_key = self.identifier.resolve(request.headers, request.peer_address)
        set_caller_context(caller_key)

        decision = self.rate_limiter.admit(caller_key)
        if not decision.allowed:
            self._count("places_rate_limit_denials_total")
            raise RateLimitExceeded(
                retry_after=decision.retry_after,
                limit=decision.limit,
                reset_in_seconds=decision.reset_in_seconds,
            )

        cache_key = make_cache_key(
            query.latitude, query.longitude, query.radius_meters, query.search_type.value
        )
        cached_results = self.cache.get(cache_key)
        if cached_results is not None:
            self._count("places_cache_hits_total")
            self.usage.record(self.source_name, ENDPOINT_LABEL, was_cached=True, caller_key=caller_key)
            return SearchOutcome(
                results=cached_results,
                cached=True,
                caller_key=caller_key,
                cache_key=cache_key,
                rate_limit=decision,
            )

        self._count("places_cache_misses_total")
        results = await self._call_upstream(query, caller_key)

        record = self.usage.record(self.source_name, ENDPOINT_LABEL, was_cached=False, caller_key=caller_key)
        self.budget.maybe_reset_for_new_month()
        alerts = self.budget.charge(record.estimated_cost)
        if self.metrics is not None:
            self.metrics.set_gauge("places_budget_usage_usd", self.budget.status().current_usage)
        self.cache.put(cache_key, results)

        await self._deliver_alerts(alerts)

        return SearchOutcome(
            results=results,
            cached=False,
            caller_key=caller_key,
            cache_key=cache_key,
            rate_limit=decision,
            alerts=alerts,
        )

    async def _call_upstream(self, query: PlaceSearchQuery, caller_key: str) -> List[Dict[str, Any]]:
        started = time.perf_counter()
        try:
            results = await asyncio.wait_for(
                self.provider.search(
                    query.latitude,
                    query.longitude,
                    query.radius_meters,
                    query.search_type.keyword,
                ),
                timeout=self.upstream_timeout,
            )
        except asyncio.TimeoutError:
            self._count("places_upstream_calls_total", outcome="timeout")
            self.logger.error("Upstream search timed out", timeout_seconds=self.upstream_timeout)
            raise UpstreamError(
                "google_places",
                error="Google Places API request timed out",
                status_code=504,
            ) from None
        except UpstreamError as exc:
            self._count("places_upstream_calls_total", outcome="error")
            if exc.reached_upstream:
                # provider answered, so the attempt counts; no charge without a billable result
                self.usage.record(
                    self.source_name,
                    ENDPOINT_LABEL,
                    was_cached=False,
                    caller_key=caller_key,
                    billable=False,
                )
            raise
        finally:
            if self.metrics is not None:
                self.metrics.observe_histogram("places_upstream_duration_seconds", time.perf_counter() - started)

        self._count("places_upstream_calls_total", outcome="success")
        return results

    async def _deliver_alerts(self, alerts: List[BudgetAlert]) -> None:
        for alert in alerts:
            self._count("places_budget_alerts_total", threshold=str(alert.threshold))
            try:
                await self.notifier.notify(alert.threshold, alert.state)
            except Exception as exc:
                # the search itself already succeeded
                self.logger.error(
                    "Budget alert delivery failed",
                    threshold=alert.threshold,
                    error=str(exc),
                    exc_info=exc,
                )

    def _count(self, metric_name: str, **labels) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, **labels)

    def sweep(self) -> Dict[str, Any]:
        """Reclaim expired rate-limit and cache entries; roll the budget month."""
        summary = {
            "rate_limit_entries_removed": self.rate_limiter.sweep(),
            "cache_entries_removed": self.cache.sweep(),
            "budget_reset": self.budget.maybe_reset_for_new_month(),
        }
        if summary["budget_reset"] and self.metrics is not None:
            self.metrics.set_gauge("places_budget_usage_usd", 0.0)
        return summary

    def usage_snapshot(self) -> Dict[str, Any]:
        """Observability view: aggregate stats, recent calls and budget state."""
        self.budget.maybe_reset_for_new_month()
        budget =self.budget.status().to_dict()
        budget["dailyUsage"] = [bucket.to_dict() for bucket in self.budget.daily_usage()]
        return {
            "stats": self.usage.stats(),
            "recentCalls": [call.to_dict() for call in self.usage.recent(RECENT_CALLS_LIMIT)],
            "budget": budget,
            "cache": self.cache.stats(),
            "note": USAGE_NOTE,
        }

    async def close(self) -> None:
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()
