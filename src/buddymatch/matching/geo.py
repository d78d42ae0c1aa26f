"""Great-circle distance on a spherical Earth."""

from __future__ import annotations

import math

from buddymatch.domain.profiles import Coordinate, validate_coordinate

EARTH_RADIUS_KM = 6371.0


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Return the haversine distance between two coordinates in kilometres.

    Raises:
        InvalidCoordinate: if either point is outside the valid lat/lon range.
    """
    validate_coordinate(a.latitude, a.longitude)
    validate_coordinate(b.latitude, b.longitude)
    if a == b:
        return 0.0

    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Clamp rounding noise so asin never sees a value above 1.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


__all__ = ["EARTH_RADIUS_KM", "distance_km"]
