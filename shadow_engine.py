"""Point shadow oracle over OSM building footprints."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Protocol

import numpy as np
import pyproj
from pysolar.solar import get_altitude, get_azimuth
from shapely import make_valid
from shapely.geometry import LineString, Point, Polygon
from shapely.ops import transform
from shapely.strtree import STRtree

from models import GeoPoint
from overpass import fetch_buildings

logger = logging.getLogger(__name__)

# Buildings farther than this toward the sun are ignored (meters).
MAX_SHADOW_LENGTH = 500.0
# Below this sun elevation (degrees) nothing gets direct sun.
MIN_SUN_ELEVATION = 2.0

BuildingSource = Callable[[GeoPoint, float], list[dict]]


class ShadowOracleError(RuntimeError):
    """The oracle could not decide whether a point is in shadow."""


class ShadowOracle(Protocol):
    def in_shadow(self, point: GeoPoint, at: datetime) -> bool:
        """True when the point receives no direct sun at the given time."""
        ...


def get_sun_position(lat: float, lon: float, dt: datetime) -> tuple[float, float]:
    """Return (azimuth_deg, elevation_deg) for a WGS84 point and timestamp."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    elevation = float(get_altitude(lat, lon, dt_utc))
    azimuth = float(get_azimuth(lat, lon, dt_utc)) % 360.0
    return azimuth, elevation


def utm_epsg(lat: float, lon: float) -> int:
    """EPSG code of the WGS84 UTM zone containing the point."""
    zone = min(60, int((lon + 180.0) // 6.0) + 1)
    return (32600 if lat >= 0 else 32700) + zone


@lru_cache(maxsize=8)
def _utm_transformer(epsg: int) -> pyproj.Transformer:
    return pyproj.Transformer.from_crs("EPSG:4326", f"EPSG:{epsg}", always_xy=True)


class BuildingIndex:
    """
    Projected footprints with roof heights, queried by rays toward the sun.

    A point is shaded when the ray from it toward the sun enters a
    footprint at a distance d where the roof is at least d * tan(elevation)
    high. A point inside a footprint is therefore always shaded.
    """

    def __init__(self, footprints: list, heights: list[float]):
        kept = [
            (geom, float(height))
            for geom, height in zip(footprints, heights)
            if height > 0 and not geom.is_empty
        ]
        self.footprints = [geom for geom, _ in kept]
        self.heights = np.array([height for _, height in kept], dtype=float)
        self.tree = STRtree(self.footprints) if self.footprints else None

    def __len__(self) -> int:
        return len(self.footprints)

    @classmethod
    def from_buildings(cls, buildings: list[dict], epsg: int) -> "BuildingIndex":
        """Index building dicts carrying a WGS84 `ring` and `height_m`."""
        to_utm = _utm_transformer(epsg)
        footprints = []
        heights = []
        for item in buildings:
            ring = item.get("ring") or []
            if len(ring) < 4:
                continue
            geom = Polygon([(p.longitude, p.latitude) for p in ring])
            if not geom.is_valid:
                geom = make_valid(geom)
            if geom.is_empty or geom.geom_type not in ("Polygon", "MultiPolygon"):
                continue
            footprints.append(transform(to_utm.transform, geom))
            heights.append(float(item.get("height_m") or 0.0))
        return cls(footprints, heights)

    def shades(self, point: Point, sun_azimuth_deg: float, sun_elevation_deg: float) -> bool:
        if sun_elevation_deg <= MIN_SUN_ELEVATION:
            return True
        if self.tree is None:
            return False

        tan_elev = math.tan(math.radians(sun_elevation_deg))
        reach = min(MAX_SHADOW_LENGTH, float(self.heights.max()) / tan_elev)
        azimuth = math.radians(sun_azimuth_deg)
        ray = LineString(
            [
                (point.x, point.y),
                (point.x + math.sin(azimuth) * reach, point.y + math.cos(azimuth) * reach),
            ]
        )

        hits = self.tree.query(ray, predicate="intersects")
        if len(hits) == 0:
            return False
        entry = np.array([point.distance(self.footprints[i].intersection(ray)) for i in hits])
        return bool(np.any(self.heights[hits] >= entry * tan_elev))


class BuildingShadowOracle:
    """
    Shadow oracle backed by OSM building footprints and the solar position.

    Buildings around each queried point are fetched on demand; any failure
    to fetch them raises ShadowOracleError.
    """

    def __init__(
        self,
        building_source: BuildingSource = fetch_buildings,
        search_radius_m: float = 150.0,
    ):
        self.building_source = building_source
        self.search_radius_m = search_radius_m

    def in_shadow(self, point: GeoPoint, at: datetime) -> bool:
        sun_azimuth_deg, sun_elevation_deg = get_sun_position(point.latitude, point.longitude, at)
        if sun_elevation_deg <= MIN_SUN_ELEVATION:
            return True

        try:
            buildings = self.building_source(point, self.search_radius_m)
        except Exception as exc:
            raise ShadowOracleError(f"Building lookup failed: {type(exc).__name__}: {exc}") from exc

        epsg = utm_epsg(point.latitude, point.longitude)
        index = BuildingIndex.from_buildings(buildings, epsg)
        x, y = _utm_transformer(epsg).transform(point.longitude, point.latitude)
        shaded = index.shades(Point(x, y), sun_azimuth_deg, sun_elevation_deg)
        logger.debug(
            "Shadow check at (%.6f, %.6f): elevation=%.1f azimuth=%.1f buildings=%d shaded=%s",
            point.latitude,
            point.longitude,
            sun_elevation_deg,
            sun_azimuth_deg,
            len(index),
            shaded,
        )
        return shaded
