"""
Google Places Nearby Search client for the gateway.
"""

from typing import Any, Dict, List, Optional, Protocol

import httpx

from shared.errors import UpstreamError
from shared.logging import get_logger

SERVICE_NAME = "google_places"
SUCCESS_STATUSES = {"OK", "ZERO_RESULTS"}


class PlacesProvider(Protocol):
    """Upstream places search, billed per call."""

    async def search(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        keyword: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        ...


class GooglePlacesClient:
    """Client for the Nearby Search endpoint.

    Every search is restricted to cafes; ``keyword`` narrows it further.
    Raises ``UpstreamError`` with ``reached_upstream`` set whenever Google
    actually answered, so callers can account for the call.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://maps.googleapis.com/maps/api/place",
        timeout: float = 8.0,
        place_type: str = "cafe",
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.place_type = place_type
        self.logger = get_logger("places.google_client")
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_params(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        keyword: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "location": f"{latitude},{longitude}",
            "radius": radius_meters,
            "type": self.place_type,
            "key": self.api_key,
        }
        if keyword:
            params["keyword"] = keyword
        return params

    async def search(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        keyword: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Run a nearby search and return the provider's result records."""
        url = f"{self.base_url}/nearbysearch/json"
        params = self.build_params(latitude, longitude, radius_meters, keyword)

        try:
            response = await self._get_client().get(url, params=params)
        except httpx.TimeoutException as exc:
            self.logger.error("Google Places request timed out", error_type=type(exc).__name__)
            raise UpstreamError(
                SERVICE_NAME,
                error="Google Places API request timed out",
                status_code=504,
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.error("Google Places transport error", error_type=type(exc).__name__)
            raise UpstreamError(
                SERVICE_NAME,
                error="Failed to reach Google Places API",
                status_code=502,
            ) from exc

        if not response.is_success:
            self.logger.error(
                "Google Places API error",
                status_code=response.status_code,
                response=response.text[:500],
            )
            raise UpstreamError(
                SERVICE_NAME,
                error="Failed to fetch from Google Places API",
                status_code=response.status_code,
                reached_upstream=True,
            )

        try:
            data = response.json()
        except ValueError as exc:
            self.logger.error("Google Places returned invalid JSON", status_code=response.status_code)
            raise UpstreamError(
                SERVICE_NAME,
                error="Invalid response from Google Places API",
                status_code=502,
                reached_upstream=True,
            ) from exc

        status = data.get("status")
        if status and status not in SUCCESS_STATUSES:
            self.logger.error("Google Places API status error", provider_status=status)
            raise UpstreamError(
                SERVICE_NAME,
                error=f"Google Places API error: {status}",
                message=data.get("error_message") or "Unknown error",
                status_code=400,
                reached_upstream=True,
            )

        results = data.get("results") or []
        self.logger.debug("Google Places results retrieved", count=len(results), provider_status=status)
        return results
