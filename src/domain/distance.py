"""
Distance calculation using the Haversine formula.

The great-circle distance between a booking's source and destination is
stored for information only; fares are never derived from it.

Complexity: O(1) per call.
"""

from __future__ import annotations

import math
from typing import Optional

from .entities import Coordinates

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def route_distance_km(
    source: Optional[Coordinates], destination: Optional[Coordinates]
) -> Optional[float]:
    """Distance rounded to 2 d.p., or ``None`` unless both ends are known."""
    if source is None or destination is None:
        return None
    return round(
        haversine_km(source.lat, source.lng, destination.lat, destination.lng),
        2,
    )
