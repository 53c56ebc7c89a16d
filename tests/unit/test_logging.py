"""Tests for the tagged console logger."""

import unittest
from unittest.mock import patch

from boiler.utils import logging as boiler_logging
from boiler.utils.logging import format_duration, get_logger


@patch('boiler.utils.logging.tqdm.write')
class TestLogger(unittest.TestCase):

    def setUp(self):
        self.logger = get_logger("quality_search")

    def tearDown(self):
        boiler_logging.set_debug_mode(False)
        boiler_logging.set_quiet_mode(False)
        boiler_logging.set_log_level("INFO")

    def test_level_prefix(self, mock_write):
        self.logger.info("hello")
        mock_write.assert_called_once_with("[INFO] [quality_search] hello")

    def test_domain_tags(self, mock_write):
        self.logger.search("Iteration 1")
        self.logger.passes("Pass 1/3")
        self.assertEqual([c.args[0] for c in mock_write.call_args_list],
                         ["[SEARCH] Iteration 1", "[PASS] Pass 1/3"])

    def test_debug_needs_debug_mode(self, mock_write):
        boiler_logging.set_debug_mode(False)
        self.logger.debug("hidden")
        self.logger.sample("hidden")
        mock_write.assert_not_called()

        boiler_logging.set_debug_mode(True)
        self.logger.sample("Sample 1")
        mock_write.assert_called_once_with("[SAMPLE] Sample 1")

    def test_quiet_mode_keeps_warnings(self, mock_write):
        boiler_logging.set_quiet_mode(True)
        self.logger.info("hidden")
        self.logger.search("hidden")
        self.logger.warn("shown")
        mock_write.assert_called_once_with("[WARN] [quality_search] shown")

    def test_log_level(self, mock_write):
        boiler_logging.set_log_level("error")
        self.logger.warn("hidden")
        self.logger.error("shown")
        mock_write.assert_called_once_with("[ERROR] [quality_search] shown")


class TestFormatDuration(unittest.TestCase):

    def test_format_duration(self):
        self.assertEqual(format_duration(45), "45.0s")
        self.assertEqual(format_duration(150), "2.5m")
        self.assertEqual(format_duration(5400), "1h 30m")


if __name__ == '__main__':
    unittest.main()
