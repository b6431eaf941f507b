import unittest
from datetime import datetime
from unittest import mock
from zoneinfo import ZoneInfo

from fastapi.testclient import TestClient

import api
from models import GeoPoint, RawPOI
from pipeline import EnrichmentPipeline
from terrace_config import TerraceConfig
from viewport import ViewportController


class SunnyOracle:
    def in_shadow(self, point, at):
        return False


def make_controller():
    pipeline = EnrichmentPipeline(
        road_source=lambda center, radius: [[GeoPoint(center.latitude + 0.0001, center.longitude)]],
        weather_source=lambda point: 5.0,
        shadow_oracle=SunnyOracle(),
        config=TerraceConfig(pacing_delay_s=0),
        clock=lambda: datetime(2026, 6, 15, 14, 0, tzinfo=ZoneInfo("Europe/Amsterdam")),
    )
    pois = [RawPOI("42", GeoPoint(52.372, 4.883), "Zonneterras")]
    return ViewportController(pipeline, poi_source=lambda region: pois)


class ApiTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.object(api, "CONTROLLER", make_controller())
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(api.app)

    def test_restaurants_in_view(self):
        r = self.client.get(
            "/api/restaurants",
            params={"south": 52.37, "west": 4.878, "north": 52.378, "east": 4.89, "zoom": 17},
        )
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertTrue(body["zoom_gate_open"])
        self.assertEqual(body["count"], 1)
        restaurant = body["restaurants"][0]
        self.assertEqual(restaurant["id"], "42")
        self.assertEqual(restaurant["sunny_status"], "sunny")
        self.assertEqual(restaurant["shade_status"], "no_shade")
        self.assertEqual(restaurant["cloud_status"], "not_cloudy")
        self.assertGreater(restaurant["terrace"]["lat"], restaurant["lat"])

        latest = self.client.get("/api/restaurants/latest").json()
        self.assertEqual(latest["generation"], body["generation"])
        self.assertEqual(latest["count"], 1)

    def test_zoomed_out_returns_nothing(self):
        r = self.client.get(
            "/api/restaurants",
            params={"south": 52.3, "west": 4.8, "north": 52.4, "east": 5.0, "zoom": 12},
        )
        body = r.json()
        self.assertFalse(body["zoom_gate_open"])
        self.assertEqual(body["restaurants"], [])

    def test_invalid_region_is_rejected(self):
        r = self.client.get(
            "/api/restaurants",
            params={"south": 52.4, "west": 4.8, "north": 52.3, "east": 5.0, "zoom": 17},
        )
        self.assertEqual(r.status_code, 400)

    def test_enrich_supplied_restaurants(self):
        r = self.client.post(
            "/api/enrich",
            json={"restaurants": [{"id": "a", "lat": 52.0, "lng": 4.0}, {"id": "b", "lat": 52.1, "lng": 4.1, "name": "B"}]},
        )
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["count"], 2)
        self.assertEqual(body["sunny"], 2)
        self.assertEqual([row["id"] for row in body["restaurants"]], ["a", "b"])
        self.assertEqual(body["restaurants"][0]["name"], "Unknown Restaurant")

    def test_enrich_rejects_bad_coordinates(self):
        r = self.client.post("/api/enrich", json={"restaurants": [{"id": "a", "lat": 95.0, "lng": 4.0}]})
        self.assertEqual(r.status_code, 422)

    def test_progress_idle(self):
        body = self.client.get("/api/progress").json()
        self.assertEqual(body["processed"], 0)
        self.assertEqual(body["total"], 0)

    def test_config(self):
        body = self.client.get("/api/config").json()
        self.assertIn("min_zoom", body)
        self.assertIn("pacing_delay_s", body)


if __name__ == "__main__":
    unittest.main()
