"""Geographic utility functions on a spherical Earth (pure Python, no external deps)."""

from __future__ import annotations

import math

from mapline.models import GeoPoint

EARTH_RADIUS_M = 6371000.0


def destination_point(start: GeoPoint, heading_degrees: float, distance_meters: float) -> GeoPoint:
    """Point reached by travelling `distance_meters` from `start` along `heading_degrees`.

    The heading is measured clockwise from true north and does not need to be
    normalized. The result is not wrapped: longitude may leave [-180, 180]
    near the antimeridian (see ``GeoPoint.normalized``).
    """
    angular_distance = distance_meters / EARTH_RADIUS_M
    bearing = math.radians(heading_degrees)

    lat1 = math.radians(start.latitude)
    lon1 = math.radians(start.longitude)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(angular_distance)
        + math.cos(lat1) * math.sin(angular_distance) * math.cos(bearing)
    )
    lon2 = lon1 + math.atan2(
        math.sin(bearing) * math.sin(angular_distance) * math.cos(lat1),
        math.cos(angular_distance) - math.sin(lat1) * math.sin(lat2),
    )

    return GeoPoint(math.degrees(lat2), math.degrees(lon2))


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters.

    Uses the Haversine formula. Inputs are decimal degrees.
    """
    rlat1, rlon1 = math.radians(a.latitude), math.radians(a.longitude)
    rlat2, rlon2 = math.radians(b.latitude), math.radians(b.longitude)

    dlat = rlat2 - rlat1
    dlon = rlon2 - rlon1

    h = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def initial_bearing_deg(a: GeoPoint, b: GeoPoint) -> float:
    """Initial bearing from `a` to `b`, degrees clockwise from north in [0, 360)."""
    rlat1, rlat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    x = math.sin(dlon) * math.cos(rlat2)
    y = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(dlon)

    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0
