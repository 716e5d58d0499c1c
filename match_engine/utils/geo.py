"""Spherical distance helpers used by candidate discovery."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

EARTH_RADIUS_M = 6_371_000.0


def haversine_distance_m(
    lat1: Optional[float],
    lon1: Optional[float],
    lat2: Optional[float],
    lon2: Optional[float],
) -> Optional[float]:
    """Return the great-circle distance in meters between two coordinates."""
    try:
        if lat1 is None or lon1 is None or lat2 is None or lon2 is None:
            return None
        phi1 = math.radians(float(lat1))
        phi2 = math.radians(float(lat2))
        dphi = math.radians(float(lat2) - float(lat1))
        dlambda = math.radians(float(lon2) - float(lon1))
    except (TypeError, ValueError):
        return None

    sin_dphi = math.sin(dphi / 2.0)
    sin_dlambda = math.sin(dlambda / 2.0)
    a = sin_dphi * sin_dphi + math.cos(phi1) * math.cos(phi2) * sin_dlambda * sin_dlambda
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))
    return float(EARTH_RADIUS_M * c)


def coerce_float(
    value: Any,
    *,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num) or math.isinf(num):
        return None
    if min_val is not None and num < min_val:
        return None
    if max_val is not None and num > max_val:
        return None
    return num


def build_geojson_point(lat: float, lon: float) -> Dict[str, Any]:
    return {"type": "Point", "coordinates": [float(lon), float(lat)]}


def bounding_box_filter(lat: float, lon: float, radius_m: float) -> Dict[str, Any]:
    """Build a Mongo filter on ``location.lat``/``location.lon`` covering a circle.

    The box is a superset of the circle; callers still apply the exact
    haversine distance. Handles boxes crossing the antimeridian and boxes that
    contain a pole (where every longitude qualifies).
    """
    angular = radius_m / EARTH_RADIUS_M
    delta_lat = math.degrees(angular)
    min_lat = lat - delta_lat
    max_lat = lat + delta_lat

    query: Dict[str, Any] = {
        "location.lat": {"$gte": max(min_lat, -90.0), "$lte": min(max_lat, 90.0)},
    }
    if min_lat <= -90.0 or max_lat >= 90.0:
        return query

    ratio = math.sin(angular) / math.cos(math.radians(lat))
    if ratio >= 1.0:
        return query
    delta_lon = math.degrees(math.asin(ratio))
    lon_ranges = _lon_ranges(lon - delta_lon, lon + delta_lon)
    if len(lon_ranges) == 1:
        lo, hi = lon_ranges[0]
        query["location.lon"] = {"$gte": lo, "$lte": hi}
    else:
        query["$or"] = [{"location.lon": {"$gte": lo, "$lte": hi}} for lo, hi in lon_ranges]
    return query


def _lon_ranges(min_lon: float, max_lon: float) -> List[Tuple[float, float]]:
    if max_lon - min_lon >= 360.0:
        return [(-180.0, 180.0)]
    if min_lon < -180.0:
        return [(min_lon + 360.0, 180.0), (-180.0, max_lon)]
    if max_lon > 180.0:
        return [(min_lon, 180.0), (-180.0, max_lon - 360.0)]
    return [(min_lon, max_lon)]


__all__ = [
    "EARTH_RADIUS_M",
    "bounding_box_filter",
    "build_geojson_point",
    "coerce_float",
    "haversine_distance_m",
]
