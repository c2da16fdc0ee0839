"""
Test helper functions and factory methods for the Places Gateway.
"""

import asyncio
from typing import Any, Dict, List, Optional

from shared.config import ServiceConfig, get_config
from shared.errors import UpstreamError


class TestDataFactory:
    """Factory for creating test data."""

    __test__ = False

    @staticmethod
    def create_place(
        name: str = "Blue Bottle Coffee",
        latitude: float = 34.4208,
        longitude: float = -119.6982,
        place_id: Optional[str] = None,
        types: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Create one provider-shaped place record."""
        return {
            "place_id": place_id or f"place-{name.lower().replace(' ', '-')}",
            "name": name,
            "vicinity": "State St, Santa Barbara",
            "geometry": {"location": {"lat": latitude, "lng": longitude}},
            "types": types or ["cafe", "food", "point_of_interest", "establishment"],
            "rating": 4.6,
            "user_ratings_total": 812,
            "business_status": "OPERATIONAL",
        }

    @staticmethod
    def create_places(count: int = 3) -> List[Dict[str, Any]]:
        """Create a list of distinct place records."""
        names = ["Blue Bottle Coffee", "Dune Coffee Roasters", "Handlebar Coffee", "Caje Coffee", "Lucky Penny"]
        return [
            TestDataFactory.create_place(name=names[i % len(names)], place_id=f"place-{i}")
            for i in range(count)
        ]

    @staticmethod
    def create_nearby_search_response(results: Optional[List[Dict[str, Any]]] = None,
                                      status: str = "OK",
                                      error_message: Optional[str] = None) -> Dict[str, Any]:
        """Create a Nearby Search JSON body."""
        body: Dict[str, Any] = {
            "html_attributions": [],
            "results": results if results is not None else TestDataFactory.create_places(),
            "status": status,
        }
        if error_message:
            body["error_message"] = error_message
        return body


class FakePlacesProvider:
    """In-memory stand-in for the upstream provider that records every call."""

    __test__ = False

    def __init__(self, results: Optional[List[Dict[str, Any]]] = None,
                 error: Optional[Exception] = None,
                 gate: Optional[asyncio.Event] = None):
        self.results = results if results is not None else TestDataFactory.create_places()
        self.error = error
        self.gate = gate
        self.calls: List[Dict[str, Any]] = []

    async def search(self, latitude: float, longitude: float, radius_meters: int,
                     keyword: Optional[str] = None) -> List[Dict[str, Any]]:
        self.calls.append({
            "latitude": latitude,
            "longitude": longitude,
            "radius_meters": radius_meters,
            "keyword": keyword,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.results)

    @property
    def call_count(self) -> int:
        return len(self.calls)


def create_upstream_error(status_code: int = 403, reached_upstream: bool = True) -> UpstreamError:
    """Create an UpstreamError as the Google client would raise it."""
    return UpstreamError(
        "google_places",
        error="Failed to fetch from Google Places API",
        status_code=status_code,
        reached_upstream=reached_upstream,
    )


def create_test_config(**overrides) -> ServiceConfig:
    """Create a gateway config with a fake API key and deterministic defaults."""
    settings = {
        "google_places_api_key": "test-places-key",
        "monthly_budget_usd": 50.0,
        "cost_per_request_usd": 0.032,
        "rate_limit_max_requests": 5,
        "rate_limit_window_seconds": 3600,
        "cache_ttl_seconds": 3600,
        "alert_channel": "log",
        "env": "test",
    }
    settings.update(overrides)
    return get_config("places", 8000, **settings)
