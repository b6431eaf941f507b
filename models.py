"""Value types shared by the enrichment pipeline and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

UNKNOWN_RESTAURANT = "Unknown Restaurant"


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 point in degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    def to_dict(self) -> dict:
        return {"lat": self.latitude, "lng": self.longitude}


@dataclass(frozen=True)
class BoundingRegion:
    south: float
    west: float
    north: float
    east: float

    def __post_init__(self) -> None:
        if not self.south < self.north:
            raise ValueError(f"south ({self.south}) must be below north ({self.north})")
        if not self.west < self.east:
            raise ValueError(f"west ({self.west}) must be below east ({self.east})")
        # Corners must be valid points.
        GeoPoint(self.south, self.west)
        GeoPoint(self.north, self.east)

    def to_dict(self) -> dict:
        return {"south": self.south, "west": self.west, "north": self.north, "east": self.east}


@dataclass(frozen=True)
class RawPOI:
    external_id: str
    location: GeoPoint
    name: str = UNKNOWN_RESTAURANT


class ShadeStatus(str, Enum):
    SHADE = "shade"
    NO_SHADE = "no_shade"


class CloudStatus(str, Enum):
    CLOUDY = "cloudy"
    NOT_CLOUDY = "not_cloudy"


class SunnyStatus(str, Enum):
    SUNNY = "sunny"
    NOT_SUNNY = "not_sunny"


@dataclass(frozen=True)
class EnrichedRestaurant:
    poi: RawPOI
    terrace_location: GeoPoint
    shade_status: ShadeStatus
    cloud_status: CloudStatus
    sunny_status: SunnyStatus

    @property
    def external_id(self) -> str:
        return self.poi.external_id

    @property
    def location(self) -> GeoPoint:
        return self.poi.location

    @property
    def name(self) -> str:
        return self.poi.name

    def to_dict(self) -> dict:
        return {
            "id": self.poi.external_id,
            "name": self.poi.name,
            "lat": self.poi.location.latitude,
            "lng": self.poi.location.longitude,
            "terrace": self.terrace_location.to_dict(),
            "shade_status": self.shade_status.value,
            "cloud_status": self.cloud_status.value,
            "sunny_status": self.sunny_status.value,
        }


@dataclass(frozen=True)
class PipelineProgress:
    processed: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {"processed": self.processed, "total": self.total}


IDLE_PROGRESS = PipelineProgress(0, 0)


@dataclass
class RunContext:
    """Mutable state owned by exactly one pipeline run."""

    total: int
    results: list[EnrichedRestaurant] = field(default_factory=list)
    processed: int = 0

    @property
    def progress(self) -> PipelineProgress:
        return PipelineProgress(self.processed, self.total)
