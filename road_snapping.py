"""Snap a restaurant location to the nearest vertex of the surrounding road network."""
from __future__ import annotations

import logging
import math
from typing import Callable, Sequence

from models import GeoPoint
from overpass import fetch_roads

logger = logging.getLogger(__name__)

ROAD_SEARCH_RADIUS_M = 100.0

RoadSource = Callable[[GeoPoint, float], Sequence[Sequence[GeoPoint]]]


def _degree_distance(a: GeoPoint, b: GeoPoint) -> float:
    # Planar distance in raw degrees; not corrected for latitude.
    return math.sqrt((a.latitude - b.latitude) ** 2 + (a.longitude - b.longitude) ** 2)


def closest_vertex(location: GeoPoint, roads: Sequence[Sequence[GeoPoint]]) -> GeoPoint:
    """First vertex (in road/vertex order) with the smallest degree distance to location."""
    closest = location
    min_distance = math.inf
    for road in roads:
        for vertex in road or ():
            distance = _degree_distance(vertex, location)
            if distance < min_distance:
                min_distance = distance
                closest = vertex
    return closest


def nearest_road_point(
    location: GeoPoint,
    road_source: RoadSource = fetch_roads,
    radius_m: float = ROAD_SEARCH_RADIUS_M,
) -> GeoPoint:
    """
    Nearest road vertex within radius_m of location.

    Returns location itself when no road is found or the road lookup fails.
    """
    try:
        roads = road_source(location, radius_m)
    except Exception as exc:  # noqa: BLE001 - lookup failure means "no road"
        logger.warning(
            "Road lookup failed near (%.6f, %.6f): %s: %s",
            location.latitude,
            location.longitude,
            type(exc).__name__,
            exc,
        )
        return location

    if not roads:
        return location
    return closest_vertex(location, roads)
