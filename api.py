"""FastAPI server for sunny terrace lookups."""
import logging

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from models import UNKNOWN_RESTAURANT, BoundingRegion, GeoPoint, RawPOI, SunnyStatus
from pipeline import EnrichmentPipeline
from terrace_config import get_config
from viewport import ViewportController

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Sunny Terraces", version="0.1.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

CONFIG = get_config()
CONTROLLER = ViewportController(EnrichmentPipeline.with_defaults(CONFIG))
logger.info(
    "Sunny Terraces ready: min_zoom=%d pacing=%.2fs timezone=%s",
    CONFIG.min_zoom,
    CONFIG.pacing_delay_s,
    CONFIG.timezone,
)


# ---------- Endpoints ----------

def _region_or_400(south: float, west: float, north: float, east: float) -> BoundingRegion:
    try:
        return BoundingRegion(south=south, west=west, north=north, east=east)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid bounding region: {exc}") from exc


@app.get("/api/restaurants")
def restaurants_in_view(
    south: float = Query(..., description="Southern latitude of the viewport"),
    west: float = Query(..., description="Western longitude of the viewport"),
    north: float = Query(..., description="Northern latitude of the viewport"),
    east: float = Query(..., description="Eastern longitude of the viewport"),
    zoom: float = Query(..., ge=0, le=22),
):
    """Enrich the restaurants visible in a viewport with terrace and sun status."""
    region = _region_or_400(south, west, north, east)
    snapshot = CONTROLLER.update(region, zoom)
    payload = snapshot.to_dict()
    payload["min_zoom"] = CONTROLLER.min_zoom
    return payload


@app.get("/api/restaurants/latest")
def latest_restaurants():
    """Most recently published result set."""
    generation, restaurants = CONTROLLER.latest()
    return {
        "generation": generation,
        "count": len(restaurants),
        "restaurants": [r.to_dict() for r in restaurants],
    }


@app.get("/api/progress")
def progress():
    return {"generation": CONTROLLER.generation, **CONTROLLER.progress.to_dict()}


@app.get("/api/config")
def config():
    return CONFIG.as_dict()


class RestaurantIn(BaseModel):
    id: str = Field(min_length=1)
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    name: str | None = None


class EnrichRequest(BaseModel):
    restaurants: list[RestaurantIn] = Field(default_factory=list, max_length=500)


@app.post("/api/enrich")
def enrich_restaurants(body: EnrichRequest):
    """Run the enrichment pipeline on caller-supplied restaurants, outside any viewport."""
    pois = [
        RawPOI(
            external_id=item.id,
            location=GeoPoint(item.lat, item.lng),
            name=item.name or UNKNOWN_RESTAURANT,
        )
        for item in body.restaurants
    ]
    results = CONTROLLER.pipeline.run(pois)
    return {
        "count": len(results),
        "sunny": sum(1 for r in results if r.sunny_status == SunnyStatus.SUNNY),
        "restaurants": [r.to_dict() for r in results],
    }
