import unittest
from datetime import datetime, timezone
from unittest import mock

from shapely.geometry import Point, Polygon

import shadow_engine
from models import GeoPoint
from shadow_engine import BuildingIndex, BuildingShadowOracle, ShadowOracleError, utm_epsg

NOON = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


def square(x0, y0, size):
    return Polygon([(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)])


class BuildingIndexTests(unittest.TestCase):
    def setUp(self):
        # 10 m block, 10 m tall, occupying x 0..10, y 0..10.
        self.index = BuildingIndex([square(0, 0, 10)], [10.0])

    def test_sun_from_south_shades_north_side(self):
        # Sun at azimuth 180, 45 deg: shadow reaches 10 m north of the block.
        self.assertTrue(self.index.shades(Point(5, 15), 180.0, 45.0))
        self.assertFalse(self.index.shades(Point(5, 25), 180.0, 45.0))
        self.assertFalse(self.index.shades(Point(5, -5), 180.0, 45.0))

    def test_shadow_shortens_as_sun_rises(self):
        # At 60 deg the 10 m block casts ~5.8 m.
        self.assertTrue(self.index.shades(Point(5, 15), 180.0, 60.0))
        self.assertFalse(self.index.shades(Point(5, 17), 180.0, 60.0))

    def test_point_inside_footprint_is_shaded(self):
        self.assertTrue(self.index.shades(Point(5, 5), 90.0, 80.0))

    def test_low_sun_is_always_shadow(self):
        self.assertTrue(self.index.shades(Point(500, 500), 180.0, 1.0))

    def test_ignores_buildings_without_height(self):
        index = BuildingIndex([square(0, 0, 10)], [0.0])
        self.assertEqual(len(index), 0)
        self.assertFalse(index.shades(Point(5, 15), 180.0, 45.0))

    def test_taller_building_behind_lower_one(self):
        index = BuildingIndex([square(0, 0, 10), square(0, -40, 10)], [2.0, 60.0])
        # Low block is too short, the tall one 45 m away still reaches the point.
        self.assertTrue(index.shades(Point(5, 15), 180.0, 45.0))

    def test_utm_zone(self):
        self.assertEqual(utm_epsg(52.0, 4.9), 32631)
        self.assertEqual(utm_epsg(55.7, 12.5), 32633)
        self.assertEqual(utm_epsg(-33.9, 151.2), 32756)


def ring_around(lat0, lat1, lon0, lon1):
    return [
        GeoPoint(lat0, lon0),
        GeoPoint(lat0, lon1),
        GeoPoint(lat1, lon1),
        GeoPoint(lat1, lon0),
        GeoPoint(lat0, lon0),
    ]


class BuildingShadowOracleTests(unittest.TestCase):
    def setUp(self):
        self.point = GeoPoint(52.0, 4.0)
        # Tall block ~5-11 m south of the point.
        self.south_block = {
            "osm_id": 1,
            "ring": ring_around(51.9999, 51.99995, 3.9999, 4.0001),
            "height_m": 20.0,
            "height_source": "height_tag",
        }

    def test_point_behind_building_is_in_shadow(self):
        oracle = BuildingShadowOracle(building_source=lambda point, radius: [self.south_block])
        with mock.patch.object(shadow_engine, "get_sun_position", return_value=(180.0, 45.0)):
            self.assertTrue(oracle.in_shadow(self.point, NOON))

    def test_point_in_open_space_is_sunny(self):
        oracle = BuildingShadowOracle(building_source=lambda point, radius: [])
        with mock.patch.object(shadow_engine, "get_sun_position", return_value=(180.0, 45.0)):
            self.assertFalse(oracle.in_shadow(self.point, NOON))

    def test_sun_from_north_leaves_point_sunny(self):
        oracle = BuildingShadowOracle(building_source=lambda point, radius: [self.south_block])
        with mock.patch.object(shadow_engine, "get_sun_position", return_value=(0.0, 45.0)):
            self.assertFalse(oracle.in_shadow(self.point, NOON))

    def test_sun_below_horizon_skips_building_lookup(self):
        calls = []

        def source(point, radius):
            calls.append(point)
            return []

        oracle = BuildingShadowOracle(building_source=source)
        with mock.patch.object(shadow_engine, "get_sun_position", return_value=(0.0, -10.0)):
            self.assertTrue(oracle.in_shadow(self.point, NOON))
        self.assertEqual(calls, [])

    def test_building_lookup_failure_raises_oracle_error(self):
        def source(point, radius):
            raise ConnectionError("overpass down")

        oracle = BuildingShadowOracle(building_source=source, search_radius_m=80.0)
        with mock.patch.object(shadow_engine, "get_sun_position", return_value=(180.0, 45.0)):
            with self.assertRaises(ShadowOracleError):
                oracle.in_shadow(self.point, NOON)

    def test_real_sun_position_at_summer_noon(self):
        azimuth, elevation = shadow_engine.get_sun_position(52.0, 4.0, NOON)
        self.assertGreater(elevation, 55.0)
        self.assertTrue(150.0 < azimuth < 210.0)


if __name__ == "__main__":
    unittest.main()
