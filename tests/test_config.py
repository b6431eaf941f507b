import unittest

from terrace_config import DEFAULT_CONFIG, TerraceConfig


class TerraceConfigTests(unittest.TestCase):
    def test_defaults(self):
        self.assertEqual(DEFAULT_CONFIG.min_zoom, 16)
        self.assertEqual(DEFAULT_CONFIG.pacing_delay_s, 0.1)
        self.assertEqual(DEFAULT_CONFIG.road_radius_m, 100.0)
        self.assertEqual(DEFAULT_CONFIG.terrace_offset_m, 5.0)
        self.assertEqual(DEFAULT_CONFIG.cloud_threshold_pct, 20.0)
        self.assertEqual(DEFAULT_CONFIG.default_center, (52.3676, 4.9041))
        self.assertEqual(str(DEFAULT_CONFIG.tz), "Europe/Amsterdam")

    def test_env_overrides(self):
        config = TerraceConfig.from_env(
            {
                "SUNNY_TERRACE_MIN_ZOOM": "14",
                "SUNNY_TERRACE_PACING_DELAY_S": "0.2",
                "SUNNY_TERRACE_TIMEZONE": "Europe/Copenhagen",
                "SUNNY_TERRACE_ROAD_RADIUS_M": " ",
                "UNRELATED": "x",
            }
        )
        self.assertEqual(config.min_zoom, 14)
        self.assertEqual(config.pacing_delay_s, 0.2)
        self.assertEqual(config.timezone, "Europe/Copenhagen")
        self.assertEqual(config.road_radius_m, 100.0)

    def test_invalid_env_value(self):
        with self.assertRaises(ValueError):
            TerraceConfig.from_env({"SUNNY_TERRACE_MIN_ZOOM": "sixteen"})


if __name__ == "__main__":
    unittest.main()
