"""Sequential enrichment of restaurants with terrace location and sun status."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Sequence

from environment import cloud_status, shade_status, sunny_status
from models import (
    IDLE_PROGRESS,
    CloudStatus,
    EnrichedRestaurant,
    PipelineProgress,
    RawPOI,
    RunContext,
    ShadeStatus,
    SunnyStatus,
)
from overpass import fetch_buildings, fetch_roads
from road_snapping import RoadSource, nearest_road_point
from seating_heuristic import estimate_terrace_point
from shadow_engine import BuildingShadowOracle, ShadowOracle
from terrace_config import DEFAULT_CONFIG, TerraceConfig
from weather import get_cloud_cover

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PipelineProgress], None]


def fallback_enrichment(poi: RawPOI) -> EnrichedRestaurant:
    """Enrichment used when processing a record fails."""
    return EnrichedRestaurant(
        poi=poi,
        terrace_location=poi.location,
        shade_status=ShadeStatus.NO_SHADE,
        cloud_status=CloudStatus.NOT_CLOUDY,
        sunny_status=SunnyStatus.NOT_SUNNY,
    )


class EnrichmentPipeline:
    """
    Enrich restaurants one at a time, in input order.

    Every run allocates its own RunContext; a pipeline instance can be
    shared by overlapping runs without them touching each other's results
    or progress.
    """

    def __init__(
        self,
        road_source: RoadSource | None = None,
        weather_source: Callable | None = None,
        shadow_oracle: ShadowOracle | None = None,
        config: TerraceConfig = DEFAULT_CONFIG,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.road_source = road_source or partial(fetch_roads, config=config)
        self.weather_source = weather_source or partial(get_cloud_cover, config=config)
        self.shadow_oracle = shadow_oracle
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.sleep = sleep

    @classmethod
    def with_defaults(cls, config: TerraceConfig = DEFAULT_CONFIG) -> "EnrichmentPipeline":
        """Pipeline wired to Overpass, Open-Meteo and the building shadow oracle."""
        oracle = BuildingShadowOracle(
            building_source=partial(fetch_buildings, config=config),
            search_radius_m=config.building_radius_m,
        )
        return cls(shadow_oracle=oracle, config=config)

    def enrich(self, poi: RawPOI) -> EnrichedRestaurant:
        """Enrich a single restaurant. Exceptions propagate to the caller."""
        road_point = nearest_road_point(poi.location, self.road_source, self.config.road_radius_m)
        terrace = estimate_terrace_point(poi.location, road_point, self.config.terrace_offset_m)
        shade = shade_status(terrace, self.clock(), self.shadow_oracle, self.config.tz)
        # Weather resolution is far coarser than the terrace offset.
        cloud = cloud_status(poi.location, self.weather_source, self.config.cloud_threshold_pct)
        return EnrichedRestaurant(
            poi=poi,
            terrace_location=terrace,
            shade_status=shade,
            cloud_status=cloud,
            sunny_status=sunny_status(shade, cloud),
        )

    def run(
        self,
        pois: Sequence[RawPOI],
        on_progress: ProgressCallback | None = None,
    ) -> list[EnrichedRestaurant]:
        """
        Enrich every restaurant and return one result per input, in order.

        A failing record gets the fallback enrichment instead of aborting
        the batch. on_progress receives (0, N) at the start, an update after
        each record and (0, 0) once the run is over. Pacing sleeps fall
        between records, so none follows the last one.
        """
        ctx = RunContext(total=len(pois))
        self._emit(on_progress, ctx.progress)

        for i, poi in enumerate(pois):
            try:
                enriched = self.enrich(poi)
            except Exception:
                logger.exception("Error processing restaurant %s (%s)", poi.name, poi.external_id)
                enriched = fallback_enrichment(poi)

            ctx.results.append(enriched)
            ctx.processed += 1
            self._emit(on_progress, ctx.progress)

            if i < len(pois) - 1 and self.config.pacing_delay_s > 0:
                logger.debug("Pacing %.3fs before next restaurant", self.config.pacing_delay_s)
                self.sleep(self.config.pacing_delay_s)

        sunny = sum(1 for r in ctx.results if r.sunny_status == SunnyStatus.SUNNY)
        logger.info("Enriched %d restaurants (%d sunny)", len(ctx.results), sunny)
        self._emit(on_progress, IDLE_PROGRESS)
        return ctx.results

    @staticmethod
    def _emit(on_progress: ProgressCallback | None, progress: PipelineProgress) -> None:
        if on_progress is None:
            return
        try:
            on_progress(progress)
        except Exception:
            logger.exception("Progress callback failed")
