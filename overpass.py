"""OpenStreetMap Overpass adapters: restaurants, roads and building footprints."""
from __future__ import annotations

import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from models import UNKNOWN_RESTAURANT, BoundingRegion, GeoPoint, RawPOI
from terrace_config import DEFAULT_CONFIG, TerraceConfig

logger = logging.getLogger(__name__)

RESTAURANT_QUERY = """
[out:json][timeout:25];
(
  node["amenity"="restaurant"]({south},{west},{north},{east});
);
out;
"""

ROAD_QUERY = """
[out:json][timeout:25];
(
  way["highway"](around:{radius},{lat},{lon});
);
out geom;
"""

BUILDING_QUERY = """
[out:json][timeout:25];
(
  way["building"](around:{radius},{lat},{lon});
);
out geom tags;
"""

# Fallback heights (meters) by OSM building type when no height tags exist.
BUILDING_TYPE_HEIGHTS = {
    "house": 8.0,
    "residential": 9.0,
    "apartments": 12.0,
    "commercial": 14.0,
    "retail": 12.0,
    "office": 15.0,
    "industrial": 11.0,
    "warehouse": 10.0,
    "hospital": 18.0,
    "hotel": 20.0,
    "school": 12.0,
    "church": 22.0,
    "cathedral": 25.0,
}
DEFAULT_BUILDING_HEIGHT = 9.0


def make_session(config: TerraceConfig = DEFAULT_CONFIG) -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": config.user_agent})
    retry = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


SESSION = make_session()


def _post_query(query: str, config: TerraceConfig, session: requests.Session | None) -> dict:
    session = session or SESSION
    r = session.post(config.overpass_url, data={"data": query}, timeout=config.http_timeout_s)
    r.raise_for_status()
    data = r.json()
    if not isinstance(data.get("elements"), list):
        raise RuntimeError("Overpass payload did not include an elements list")
    return data


def fetch_restaurants(
    region: BoundingRegion,
    config: TerraceConfig = DEFAULT_CONFIG,
    session: requests.Session | None = None,
) -> list[RawPOI]:
    """Restaurants (OSM nodes) inside the region. Raises on transport errors."""
    query = RESTAURANT_QUERY.format(
        south=region.south, west=region.west, north=region.north, east=region.east
    )
    data = _post_query(query, config, session)

    pois = []
    skipped = 0
    for el in data["elements"]:
        lat = el.get("lat")
        lon = el.get("lon")
        if lat is None or lon is None or el.get("id") is None:
            skipped += 1
            continue
        try:
            location = GeoPoint(float(lat), float(lon))
        except ValueError:
            skipped += 1
            continue
        tags = el.get("tags") or {}
        pois.append(
            RawPOI(
                external_id=str(el["id"]),
                location=location,
                name=tags.get("name") or UNKNOWN_RESTAURANT,
            )
        )

    if skipped:
        logger.warning("Skipped %d restaurant elements without usable coordinates", skipped)
    logger.info("Overpass returned %d restaurants for %s", len(pois), region.to_dict())
    return pois


def _way_points(way: dict) -> list[GeoPoint]:
    points = []
    for node in way.get("geometry") or []:
        lat = node.get("lat")
        lon = node.get("lon")
        if lat is None or lon is None:
            continue
        points.append(GeoPoint(float(lat), float(lon)))
    return points


def fetch_roads(
    center: GeoPoint,
    radius_m: float,
    config: TerraceConfig = DEFAULT_CONFIG,
    session: requests.Session | None = None,
) -> list[list[GeoPoint]]:
    """Vertex lists of every highway way within radius_m of center, in response order."""
    query = ROAD_QUERY.format(radius=radius_m, lat=center.latitude, lon=center.longitude)
    data = _post_query(query, config, session)
    return [_way_points(way) for way in data["elements"] if way.get("geometry")]


def _as_float(value) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.lower().replace("m", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def resolve_height_m(tags: dict) -> tuple[float, str]:
    """Building height in meters and where it came from."""
    direct_height = _as_float(tags.get("height"))
    if direct_height and direct_height > 0:
        return direct_height, "height_tag"

    levels = _as_float(tags.get("building:levels"))
    if levels and levels > 0:
        return levels * 3.0, "building_levels"

    building_type = (tags.get("building") or "yes").lower()
    return BUILDING_TYPE_HEIGHTS.get(building_type, DEFAULT_BUILDING_HEIGHT), f"imputed_{building_type}"


def fetch_buildings(
    center: GeoPoint,
    radius_m: float,
    config: TerraceConfig = DEFAULT_CONFIG,
    session: requests.Session | None = None,
) -> list[dict]:
    """
    Building footprints around center.

    Each item has osm_id, ring (list of GeoPoint), height_m and height_source.
    """
    query = BUILDING_QUERY.format(radius=radius_m, lat=center.latitude, lon=center.longitude)
    data = _post_query(query, config, session)

    buildings = []
    for way in data["elements"]:
        ring = _way_points(way)
        if len(ring) < 4:
            continue
        height_m, height_source = resolve_height_m(way.get("tags") or {})
        buildings.append(
            {
                "osm_id": way.get("id"),
                "ring": ring,
                "height_m": height_m,
                "height_source": height_source,
            }
        )
    return buildings
