"""Test configuration loading."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from boiler.config import DEFAULT_ENCODER, DEFAULT_MAX_DEPTH, get_config, load_env_file


class TestConfig(unittest.TestCase):

    def setUp(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.env', delete=False) as f:
            self.empty_env = Path(f.name)

    def tearDown(self):
        self.empty_env.unlink()

    def write_env(self, *lines):
        self.empty_env.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def test_load_env_file(self):
        """Test loading variables from a .env file."""
        self.write_env("target_bitrate_mbps=6.5", "# This is a comment", "debug=true", "")

        env_vars = load_env_file(self.empty_env)

        self.assertEqual(env_vars, {"target_bitrate_mbps": "6.5", "debug": "true"})

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        config = get_config(self.empty_env)

        self.assertIsNone(config['target_bitrate_mbps'])
        self.assertEqual(config['max_depth'], DEFAULT_MAX_DEPTH)
        self.assertEqual(config['encoder'], DEFAULT_ENCODER)
        self.assertFalse(config['debug'])

    @patch.dict(os.environ, {'BOILER_TARGET_BITRATE': '9', 'BOILER_MAX_DEPTH': '0',
                             'BOILER_ENCODER': 'libx265', 'DEBUG': '1'}, clear=True)
    def test_environment_variables(self):
        config = get_config(self.empty_env)

        self.assertEqual(config['target_bitrate_mbps'], 9.0)
        self.assertEqual(config['max_depth'], 0)
        self.assertEqual(config['encoder'], 'libx265')
        self.assertTrue(config['debug'])

    @patch.dict(os.environ, {'BOILER_TARGET_BITRATE': '9'}, clear=True)
    def test_env_file_wins(self):
        self.write_env("target_bitrate_mbps=4", "max_depth=3")

        config = get_config(self.empty_env)

        self.assertEqual(config['target_bitrate_mbps'], 4.0)
        self.assertEqual(config['max_depth'], 3)

    @patch.dict(os.environ, {'BOILER_TARGET_BITRATE': 'fast', 'BOILER_MAX_DEPTH': '-2'}, clear=True)
    def test_invalid_values_fall_back(self):
        config = get_config(self.empty_env)

        self.assertIsNone(config['target_bitrate_mbps'])
        self.assertEqual(config['max_depth'], DEFAULT_MAX_DEPTH)


if __name__ == '__main__':
    unittest.main()
