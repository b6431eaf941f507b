"""Trigger enrichment runs on viewport changes and keep only the freshest results."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from functools import partial
from typing import Callable

from models import IDLE_PROGRESS, BoundingRegion, EnrichedRestaurant, PipelineProgress, RawPOI
from overpass import fetch_restaurants
from pipeline import EnrichmentPipeline
from terrace_config import TerraceConfig

logger = logging.getLogger(__name__)

PoiSource = Callable[[BoundingRegion], list[RawPOI]]
Notifier = Callable[[str], None]

RESTAURANT_FETCH_FAILED = "Failed to fetch restaurants"


@dataclass
class ViewportSnapshot:
    generation: int
    zoom: float
    zoom_gate_open: bool
    restaurants: list[EnrichedRestaurant] = field(default_factory=list)
    stale: bool = False
    notifications: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "generation": self.generation,
            "zoom": self.zoom,
            "zoom_gate_open": self.zoom_gate_open,
            "stale": self.stale,
            "notifications": list(self.notifications),
            "count": len(self.restaurants),
            "restaurants": [r.to_dict() for r in self.restaurants],
        }


class ViewportController:
    """
    Runs the enrichment pipeline for the visible region.

    Every update takes a new generation number. Only the most recent
    generation may publish progress or results; a slower, older run that
    finishes late gets its snapshot marked stale and is not published.
    """

    def __init__(
        self,
        pipeline: EnrichmentPipeline,
        poi_source: PoiSource | None = None,
        min_zoom: int | None = None,
        notify: Notifier | None = None,
    ):
        config: TerraceConfig = pipeline.config
        self.pipeline = pipeline
        self.poi_source = poi_source or partial(fetch_restaurants, config=config)
        self.min_zoom = config.min_zoom if min_zoom is None else min_zoom
        self.notify = notify

        self._lock = threading.Lock()
        self._generation = 0
        self._restaurants: list[EnrichedRestaurant] = []
        self._published_generation = 0
        self._progress = IDLE_PROGRESS

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def progress(self) -> PipelineProgress:
        with self._lock:
            return self._progress

    def latest(self) -> tuple[int, list[EnrichedRestaurant]]:
        """Generation and restaurants of the most recently published result set."""
        with self._lock:
            return self._published_generation, list(self._restaurants)

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_progress(self, generation: int, progress: PipelineProgress) -> None:
        with self._lock:
            if self._is_current(generation):
                self._progress = progress

    def _publish(self, generation: int, restaurants: list[EnrichedRestaurant]) -> bool:
        with self._lock:
            if not self._is_current(generation):
                return False
            self._restaurants = list(restaurants)
            self._published_generation = generation
            return True

    def _notify(self, message: str, notifications: list[str]) -> None:
        notifications.append(message)
        if self.notify is None:
            return
        try:
            self.notify(message)
        except Exception:
            logger.exception("Notification callback failed")

    def update(self, region: BoundingRegion, zoom: float) -> ViewportSnapshot:
        """Handle a pan/zoom: clear below the zoom gate, otherwise fetch and enrich."""
        generation = self._next_generation()
        # Older runs stop reporting from here on.
        self._set_progress(generation, IDLE_PROGRESS)
        notifications: list[str] = []

        if zoom < self.min_zoom:
            published = self._publish(generation, [])
            logger.debug("Zoom %.1f below %d, cleared results (generation %d)", zoom, self.min_zoom, generation)
            return ViewportSnapshot(generation, zoom, False, [], stale=not published)

        try:
            pois = self.poi_source(region)
        except Exception as exc:  # noqa: BLE001 - failed search means no restaurants
            logger.error("Error fetching restaurants for %s: %s: %s", region.to_dict(), type(exc).__name__, exc)
            self._notify(RESTAURANT_FETCH_FAILED, notifications)
            pois = []

        if not pois:
            # Nothing to enrich; previously published results stay in place.
            return ViewportSnapshot(
                generation,
                zoom,
                True,
                [],
                stale=not self._is_current_locked(generation),
                notifications=notifications,
            )

        restaurants = self.pipeline.run(pois, on_progress=partial(self._set_progress, generation))
        published = self._publish(generation, restaurants)
        if not published:
            logger.info("Discarding %d results of stale generation %d", len(restaurants), generation)
        return ViewportSnapshot(
            generation,
            zoom,
            True,
            restaurants,
            stale=not published,
            notifications=notifications,
        )

    def _is_current_locked(self, generation: int) -> bool:
        with self._lock:
            return self._is_current(generation)
