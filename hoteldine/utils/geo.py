"""
Distance and heading helpers for delivery tracking.

Coordinates passed as pairs follow GeoJSON order: (lng, lat).
"""
import math
from typing import Any, Mapping, Optional, Sequence

EARTH_RADIUS_KM = 6371.0


def haversine_km(coord1: Sequence[float], coord2: Sequence[float]) -> float:
    """Great-circle distance in km between two (lng, lat) pairs."""
    lng1, lat1 = coord1
    lng2, lat2 = coord2

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def calculate_bearing(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Initial bearing from point 1 to point 2 in degrees, [0, 360), 0 = north."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lng2 - lng1)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)

    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360) % 360


def _lat_lng(location: Mapping[str, Any]) -> tuple[Optional[float], Optional[float]]:
    lat = location.get("lat")
    if lat is None:
        lat = location.get("latitude")
    lng = location.get("lng")
    if lng is None:
        lng = location.get("longitude")
    return lat, lng


def bearing_from_locations(
    prev_location: Optional[Mapping[str, Any]],
    current_location: Optional[Mapping[str, Any]],
) -> Optional[float]:
    """
    Bearing between two location dicts keyed either lat/lng or latitude/longitude.
    Returns None when either location or any coordinate is missing.
    """
    if not prev_location or not current_location:
        return None

    lat1, lng1 = _lat_lng(prev_location)
    lat2, lng2 = _lat_lng(current_location)
    if None in (lat1, lng1, lat2, lng2):
        return None

    return calculate_bearing(float(lat1), float(lng1), float(lat2), float(lng2))
