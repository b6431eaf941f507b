"""Current cloud cover from Open-Meteo (free, no API key)."""
from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache

import requests

from models import GeoPoint
from terrace_config import DEFAULT_CONFIG, TerraceConfig

# Open-Meteo resolution is kilometers; ~100 m rounding lets neighbours share a lookup.
COORD_DECIMALS = 3


@lru_cache(maxsize=256)
def _fetch_current_cloud_cover(lat: float, lon: float, hour_key: str, url: str, timeout: float) -> float:
    """Fetch current cloud cover % at a rounded location. Cached per hour."""
    params = {
        "latitude": lat,
        "longitude": lon,
        "current": "cloudcover",
        "timezone": "auto",
    }
    r = requests.get(url, params=params, timeout=timeout)
    r.raise_for_status()
    data = r.json()

    current = data.get("current") or {}
    cloud = current.get("cloudcover")
    if cloud is None:
        return 0.0
    return max(0.0, min(100.0, float(cloud)))


def get_cloud_cover(
    location: GeoPoint,
    config: TerraceConfig = DEFAULT_CONFIG,
    now: datetime | None = None,
) -> float:
    """Get current cloud cover % at a location. Raises on transport or payload errors."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    hour_key = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H")
    return _fetch_current_cloud_cover(
        round(location.latitude, COORD_DECIMALS),
        round(location.longitude, COORD_DECIMALS),
        hour_key,
        config.open_meteo_url,
        config.http_timeout_s,
    )
