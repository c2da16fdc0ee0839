"""
Domain layer: query validation and the search orchestrator.
"""

from .gateway import PlacesGateway, SearchOutcome, SearchRequest
from .search_request import PlaceSearchQuery, SearchType, parse_search_query

__all__ = [
    "PlaceSearchQuery",
    "PlacesGateway",
    "SearchOutcome",
    "SearchRequest",
    "SearchType",
    "parse_search_query",
]
