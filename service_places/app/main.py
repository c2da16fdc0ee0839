"""
Places Gateway service.

Exposes the cost-governed places search and a read-only usage view on top
of ``BaseService``.
"""

import asyncio
from typing import Dict, Optional

from fastapi import Query, Request, Response

from shared.base_service import BaseService
from shared.clock import Clock
from shared.config import ServiceConfig

from .adapters.places_client import PlacesProvider
from .budget.notifiers import Notifier
from .domain.gateway import PlacesGateway, SearchRequest
from .ratelimit.fixed_window import RateLimitDecision


class GatewayService(BaseService):
    """HTTP front for ``PlacesGateway``."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        provider: Optional[PlacesProvider] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__("places", 8000, config=config)
        self.gateway = PlacesGateway.from_config(
            self.config,
            provider=provider,
            notifier=notifier,
            clock=clock,
            metrics=self.metrics,
        )
        self._sweeper: Optional[asyncio.Task] = None

        @self.app.on_event("startup")
        async def _startup():
            self.gateway.budget.maybe_reset_for_new_month()
            self._sweeper = asyncio.create_task(self._sweep_loop())
            self.logger.info(
                "Places gateway started",
                upstream_configured=self.gateway.provider is not None,
                budget=self.config.monthly_budget_usd,
                rate_limit=self.config.rate_limit_max_requests,
                rate_limit_window_seconds=self.config.rate_limit_window_seconds,
            )

        @self.app.on_event("shutdown")
        async def _shutdown():
            if self._sweeper is not None:
                self._sweeper.cancel()
                try:
                    await self._sweeper
                except asyncio.CancelledError:
                    pass
                self._sweeper = None
            await self.gateway.close()

        self._setup_places_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    async def _sweep_loop(self) -> None:
        """Periodically drop expired rate-limit and cache entries."""
        interval = self.config.sweep_interval_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                summary = self.gateway.sweep()
            except Exception as exc:
                self.logger.error("Sweep failed", error=str(exc), exc_info=exc)
                continue
            self.logger.debug("Sweep completed", **summary)

    def _set_rate_limit_headers(self, response: Response, decision: RateLimitDecision) -> None:
        """Propagate rate limiting metadata via standard headers."""
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        response.headers["X-RateLimit-Reset"] = str(decision.reset_in_seconds)

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "google_places": "configured" if self.gateway.provider is not None else "not_configured",
        }

    def _setup_places_routes(self):
        """Set up gateway routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": "places",
                "message": "Places Gateway - cost-governed places search",
                "version": "1.0.0"
            }

        @self.app.get("/api/places/search")
        async def search_places(
            request: Request,
            response: Response,
            latitude: Optional[str] = Query(None),
            longitude: Optional[str] = Query(None),
            radius: Optional[str] = Query(None),
            search_type: Optional[str] = Query(None, alias="searchType"),
        ):
            """Nearby cafe search with rate limiting, caching and spend accounting."""
            outcome = await self.gateway.handle(
                SearchRequest(
                    latitude=latitude,
                    longitude=longitude,
                    radius=radius,
                    search_type=search_type,
                    headers=request.headers,
                    peer_address=request.client.host if request.client else None,
                )
            )
            self._set_rate_limit_headers(response, outcome.rate_limit)
            response.headers["X-Cache"] = "HIT" if outcome.cached else "MISS"
            return {"results": outcome.results}

        @self.app.get("/api/usage/stats")
        async def usage_stats():
            """In-memory usage and budget view. Best effort; resets on restart."""
            return self.gateway.usage_snapshot()


def create_app():
    """Create FastAPI application."""
    service = GatewayService()
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
