"""Print the sunny terrace classification for restaurants in a bounding box."""
from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone

import requests

from geodesy import haversine_distance
from models import BoundingRegion, SunnyStatus
from overpass import fetch_restaurants
from pipeline import EnrichmentPipeline
from terrace_config import TerraceConfig, get_config
from viewport import RESTAURANT_FETCH_FAILED

logger = logging.getLogger(__name__)

# Half height and width (degrees) of the box drawn around the configured centre.
DEFAULT_SPAN_DEG = 0.004


def _parse_time(value: str | None, tz) -> datetime | None:
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(timezone.utc)


def default_bbox(config: TerraceConfig, span_deg: float = DEFAULT_SPAN_DEG) -> tuple[float, float, float, float]:
    """South, west, north, east of a box around the configured map centre."""
    lat, lon = config.default_center
    return (lat - span_deg, lon - span_deg, lat + span_deg, lon + span_deg)


def _print_rows(rows: list, top: int) -> None:
    print("sun       | shade    | clouds     | offset | name")
    print("-" * 72)
    for row in rows[:top]:
        offset = haversine_distance(row.location, row.terrace_location)
        print(
            f"{row.sunny_status.value:<9} | {row.shade_status.value:<8} | "
            f"{row.cloud_status.value:<10} | {offset:>5.1f}m | {row.name}"
        )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--bbox",
        nargs=4,
        type=float,
        metavar=("SOUTH", "WEST", "NORTH", "EAST"),
        default=None,
        help="Defaults to a small box around the configured map centre",
    )
    parser.add_argument("--time", default=None, help="ISO timestamp, e.g. 2026-06-15T14:00:00+02:00")
    parser.add_argument("--top", type=int, default=25)
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    config = get_config()
    try:
        region = BoundingRegion(*(args.bbox or default_bbox(config)))
    except ValueError as exc:
        raise SystemExit(f"Invalid bbox: {exc}")

    at = _parse_time(args.time, config.tz)
    pipeline = EnrichmentPipeline.with_defaults(config)
    if at is not None:
        pipeline.clock = lambda: at

    try:
        restaurants = fetch_restaurants(region, config=config)
    except (requests.RequestException, RuntimeError) as exc:
        logger.debug("Restaurant search failed: %s: %s", type(exc).__name__, exc)
        raise SystemExit(RESTAURANT_FETCH_FAILED)
    if not restaurants:
        raise SystemExit("No restaurants found in bbox.")

    rows = pipeline.run(restaurants)
    sunny = sum(1 for row in rows if row.sunny_status == SunnyStatus.SUNNY)

    if args.json:
        print(json.dumps({"bbox": region.to_dict(), "sunny": sunny, "restaurants": [r.to_dict() for r in rows]}, indent=2))
        return

    label = (at or datetime.now(timezone.utc)).astimezone(config.tz).isoformat()
    print(f"Restaurants in bbox: {len(rows)}  sunny: {sunny}  time={label}")
    print()
    _print_rows(rows, args.top)


if __name__ == "__main__":
    main()
