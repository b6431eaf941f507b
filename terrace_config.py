"""Runtime configuration for the sunny terrace enrichment service."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from zoneinfo import ZoneInfo

ENV_PREFIX = "SUNNY_TERRACE_"


@dataclass(frozen=True)
class TerraceConfig:
    # Below this map zoom no enrichment run is started and results are cleared.
    min_zoom: int = 16
    # Pause between two records of a run (seconds).
    pacing_delay_s: float = 0.1
    road_radius_m: float = 100.0
    terrace_offset_m: float = 5.0
    cloud_threshold_pct: float = 20.0
    building_radius_m: float = 150.0
    timezone: str = "Europe/Amsterdam"
    default_lat: float = 52.3676
    default_lon: float = 4.9041
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    open_meteo_url: str = "https://api.open-meteo.com/v1/forecast"
    http_timeout_s: float = 25.0
    user_agent: str = "SunnyTerraces/0.1"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def default_center(self) -> tuple[float, float]:
        return (self.default_lat, self.default_lon)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "TerraceConfig":
        """Build a config, overriding defaults with SUNNY_TERRACE_<FIELD> variables."""
        environ = os.environ if environ is None else environ
        base = cls()
        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or not raw.strip():
                continue
            default = getattr(base, f.name)
            try:
                overrides[f.name] = type(default)(raw.strip())
            except ValueError as exc:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}") from exc
        return replace(base, **overrides)

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_CONFIG = TerraceConfig()


def get_config() -> TerraceConfig:
    return TerraceConfig.from_env()
