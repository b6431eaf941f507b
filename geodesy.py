"""Spherical geodesy helpers: bearing, destination point and distance."""

from __future__ import annotations

import math

from models import GeoPoint

EARTH_RADIUS_M = 6_371_000.0


def bearing(origin: GeoPoint, target: GeoPoint) -> float:
    """
    Forward azimuth from origin to target in radians (0 = north, clockwise).

    Coincident points give 0.
    """
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lon = math.radians(target.longitude - origin.longitude)

    x = math.sin(d_lon) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lon)
    return math.atan2(x, y)


def destination(origin: GeoPoint, bearing_rad: float, distance_m: float) -> GeoPoint:
    """Point reached from origin after distance_m meters along bearing_rad."""
    d = distance_m / EARTH_RADIUS_M
    lat1 = math.radians(origin.latitude)
    lon1 = math.radians(origin.longitude)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(d) + math.cos(lat1) * math.sin(d) * math.cos(bearing_rad)
    )
    lon2 = lon1 + math.atan2(
        math.sin(bearing_rad) * math.sin(d) * math.cos(lat1),
        math.cos(d) - math.sin(lat1) * math.sin(lat2),
    )
    lon2_deg = math.degrees(lon2)
    if not -180.0 <= lon2_deg <= 180.0:
        lon2_deg = (lon2_deg + 540.0) % 360.0 - 180.0
    return GeoPoint(math.degrees(lat2), lon2_deg)


def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters."""
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))
