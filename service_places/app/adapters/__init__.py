"""
Adapters for services the gateway calls out to.
"""

from .places_client import GooglePlacesClient, PlacesProvider

__all__ = ["GooglePlacesClient", "PlacesProvider"]
