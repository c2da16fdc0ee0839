"""
Validation of inbound place-search parameters.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from shared.errors import ValidationError

DEFAULT_RADIUS_METERS = 8047  # five miles
MAX_RADIUS_METERS = 50000


class SearchType(str, Enum):
    """What the caller is looking for. Both map onto cafe searches."""
    COFFEE = "coffee"
    DRINKS = "drinks"

    @property
    def keyword(self) -> Optional[str]:
        return "coffee" if self is SearchType.COFFEE else None


@dataclass(frozen=True)
class PlaceSearchQuery:
    latitude: float
    longitude: float
    radius_meters: int
    search_type: SearchType


def _parse_float(raw: str) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def parse_search_query(
    latitude: Optional[str],
    longitude: Optional[str],
    radius: Optional[str] = None,
    search_type: Optional[str] = None,
    default_radius: int = DEFAULT_RADIUS_METERS,
) -> PlaceSearchQuery:
    """Turn raw query-string values into a validated query or raise ValidationError."""
    if latitude is None or longitude is None or not latitude.strip() or not longitude.strip():
        raise ValidationError("Latitude and longitude are required")

    lat = _parse_float(latitude)
    lon = _parse_float(longitude)
    if lat is None or lon is None or not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise ValidationError("Invalid coordinates")

    if radius is None or not radius.strip():
        radius_meters = default_radius
    else:
        parsed_radius = _parse_float(radius)
        if parsed_radius is None:
            raise ValidationError("Invalid radius")
        radius_meters = int(round(parsed_radius))
        if not 1 <= radius_meters <= MAX_RADIUS_METERS:
            raise ValidationError(f"Radius must be between 1 and {MAX_RADIUS_METERS} meters")

    if search_type is None or not search_type.strip():
        kind = SearchType.DRINKS
    else:
        try:
            kind = SearchType(search_type.strip().lower())
        except ValueError:
            allowed = ", ".join(member.value for member in SearchType)
            raise ValidationError(f"Invalid searchType, expected one of: {allowed}") from None

    return PlaceSearchQuery(latitude=lat, longitude=lon, radius_meters=radius_meters, search_type=kind)
