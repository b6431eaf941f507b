"""Shade, cloud and sunny classification for a single terrace."""
from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Callable

from models import CloudStatus, GeoPoint, ShadeStatus, SunnyStatus
from shadow_engine import ShadowOracle, ShadowOracleError

logger = logging.getLogger(__name__)

CLOUD_THRESHOLD_PCT = 20.0

# Outside [NIGHT_START_HOUR, NIGHT_END_HOUR] the terrace is always shaded.
NIGHT_START_HOUR = 6
NIGHT_END_HOUR = 20
# Low-sun proxy used when the shadow oracle cannot answer.
FALLBACK_SUN_START_HOUR = 9
FALLBACK_SUN_END_HOUR = 17

WeatherSource = Callable[[GeoPoint], float]


def local_hour(at: datetime, tz: tzinfo | None = None) -> int:
    """Hour of `at` in tz; naive datetimes are taken as already local."""
    if tz is not None and at.tzinfo is not None:
        return at.astimezone(tz).hour
    return at.hour


def fallback_shade_status(hour: int) -> ShadeStatus:
    if hour < FALLBACK_SUN_START_HOUR or hour > FALLBACK_SUN_END_HOUR:
        return ShadeStatus.SHADE
    return ShadeStatus.NO_SHADE


def shade_status(
    location: GeoPoint,
    at: datetime,
    oracle: ShadowOracle | None,
    tz: tzinfo | None = None,
) -> ShadeStatus:
    """
    Shade status of a point at a given time.

    Night hours are shaded without asking the oracle. An oracle that is
    missing, raises or answers with something other than a bool is
    replaced by the time-of-day fallback.
    """
    hour = local_hour(at, tz)
    if hour < NIGHT_START_HOUR or hour > NIGHT_END_HOUR:
        return ShadeStatus.SHADE

    try:
        if oracle is None:
            raise ShadowOracleError("No shadow oracle configured")
        in_shadow = oracle.in_shadow(location, at)
        if not isinstance(in_shadow, bool):
            raise ShadowOracleError(f"Malformed shadow result: {in_shadow!r}")
    except Exception as exc:  # noqa: BLE001 - any oracle failure uses the fallback
        logger.warning(
            "Shadow oracle failed at (%.6f, %.6f), using hour fallback: %s: %s",
            location.latitude,
            location.longitude,
            type(exc).__name__,
            exc,
        )
        return fallback_shade_status(hour)

    return ShadeStatus.SHADE if in_shadow else ShadeStatus.NO_SHADE


def classify_cloud_cover(coverage_pct: float, threshold_pct: float = CLOUD_THRESHOLD_PCT) -> CloudStatus:
    return CloudStatus.CLOUDY if coverage_pct > threshold_pct else CloudStatus.NOT_CLOUDY


def cloud_status(
    location: GeoPoint,
    weather_source: WeatherSource,
    threshold_pct: float = CLOUD_THRESHOLD_PCT,
) -> CloudStatus:
    """Cloud status at a location; a failed weather lookup counts as a clear sky."""
    try:
        coverage = float(weather_source(location))
    except Exception as exc:  # noqa: BLE001 - missing weather means 0% cover
        logger.warning(
            "Weather lookup failed at (%.6f, %.6f), assuming 0%% cloud cover: %s: %s",
            location.latitude,
            location.longitude,
            type(exc).__name__,
            exc,
        )
        coverage = 0.0
    return classify_cloud_cover(coverage, threshold_pct)


def sunny_status(shade: ShadeStatus, cloud: CloudStatus) -> SunnyStatus:
    if shade == ShadeStatus.NO_SHADE and cloud == CloudStatus.NOT_CLOUDY:
        return SunnyStatus.SUNNY
    return SunnyStatus.NOT_SUNNY
