from __future__ import annotations

import unittest

from easel_web.config import ServerConfig


class ServerConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = ServerConfig.from_env({})
        self.assertEqual(config.port, 3000)
        self.assertEqual((config.initial_width, config.initial_height), (800, 600))
        self.assertEqual(config.max_upload_bytes, 5 * 1024 * 1024)

    def test_env_values_are_parsed(self) -> None:
        config = ServerConfig.from_env(
            {
                "PORT": "8080",
                "EASEL_HOST": "0.0.0.0",
                "EASEL_IMAGE_TIMEOUT_S": "2.5",
                "EASEL_EXPORT_QUALITY": "70",
                "EASEL_STATIC_DIR": " ",
            }
        )
        self.assertEqual(config.port, 8080)
        self.assertEqual(config.host, "0.0.0.0")
        self.assertEqual(config.image_fetch_timeout_s, 2.5)
        self.assertEqual(config.export_quality, 70)
        self.assertEqual(config.static_dir, "public")

    def test_bad_env_value_names_the_variable(self) -> None:
        with self.assertRaisesRegex(ValueError, "EASEL_IMAGE_WORKERS"):
            ServerConfig.from_env({"EASEL_IMAGE_WORKERS": "many"})

    def test_ranges_are_validated(self) -> None:
        for overrides in [{"port": 0}, {"export_quality": 101}, {"image_fetch_timeout_s": 0.0}, {"initial_width": 0}]:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValueError):
                    ServerConfig(**overrides)

    def test_with_overrides_ignores_none(self) -> None:
        config = ServerConfig().with_overrides(port=None, host="::1")
        self.assertEqual(config.port, 3000)
        self.assertEqual(config.host, "::1")


if __name__ == "__main__":
    unittest.main()
