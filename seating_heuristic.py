"""
Estimate the outdoor seating location of a restaurant.

Strategy: the terrace sits a few meters from the building toward the
nearest street, so shift the restaurant point along the bearing to the
closest road vertex.
"""
from __future__ import annotations

from geodesy import bearing, destination
from models import GeoPoint

TERRACE_OFFSET_M = 5.0


def estimate_terrace_point(
    location: GeoPoint,
    road_point: GeoPoint,
    offset_meters: float = TERRACE_OFFSET_M,
) -> GeoPoint:
    """
    Return the estimated terrace point.

    When road_point equals location (no road found) the bearing is 0 and the
    terrace ends up due north of the restaurant.
    """
    brg = bearing(location, road_point)
    return destination(location, brg, offset_meters)
