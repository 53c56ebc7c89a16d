"""Unit tests for target selection and the tolerance gate."""

import unittest

from boiler.core.modules.optimization.bitrate_targets import (
    DEFAULT_TARGET_BPS, TargetProfile, is_within_tolerance, resolve_target,
    should_skip_encoding, target_for_resolution, tolerance_bounds, within_target
)


class TestResolutionTargets(unittest.TestCase):

    def test_table_entries(self):
        self.assertEqual(target_for_resolution(2160), 11_000_000)
        self.assertEqual(target_for_resolution(1080), 8_000_000)
        self.assertEqual(target_for_resolution(720), 5_000_000)
        self.assertEqual(target_for_resolution(480), 2_500_000)

    def test_unlisted_resolutions_use_nearest_lower_tier(self):
        self.assertEqual(target_for_resolution(1440), 8_000_000)
        self.assertEqual(target_for_resolution(4320), 11_000_000)
        self.assertEqual(target_for_resolution(800), 5_000_000)

    def test_small_resolutions_use_default(self):
        self.assertEqual(target_for_resolution(360), DEFAULT_TARGET_BPS)
        self.assertEqual(target_for_resolution(0), DEFAULT_TARGET_BPS)

    def test_explicit_target_overrides_table(self):
        profile = resolve_target(2160, explicit_bps=3_000_000)
        self.assertEqual(profile.bitrate, 3_000_000)
        self.assertEqual(profile.source, "explicit")

        profile = resolve_target(1080)
        self.assertEqual(profile.bitrate, 8_000_000)
        self.assertEqual(profile.source, "resolution")

    def test_target_must_be_positive(self):
        with self.assertRaises(ValueError):
            TargetProfile(0)
        with self.assertRaises(ValueError):
            resolve_target(1080, explicit_bps=-1)


class TestToleranceGate(unittest.TestCase):

    def test_bounds(self):
        self.assertEqual(tolerance_bounds(8_000_000), (7_600_000, 8_400_000))
        profile = TargetProfile(8_000_000)
        self.assertEqual((profile.lower, profile.upper), (7_600_000, 8_400_000))

    def test_inclusive_edges(self):
        self.assertTrue(is_within_tolerance(7_600_000, 7_600_000, 8_400_000))
        self.assertTrue(is_within_tolerance(8_400_000, 7_600_000, 8_400_000))
        self.assertFalse(is_within_tolerance(7_599_999, 7_600_000, 8_400_000))
        self.assertFalse(is_within_tolerance(8_400_001, 7_600_000, 8_400_000))

    def test_within_target(self):
        self.assertTrue(within_target(8_000_000, 8_000_000))
        self.assertTrue(within_target(8_300_000, 8_000_000))
        self.assertFalse(within_target(9_000_000, 8_000_000))

    def test_pre_check(self):
        self.assertTrue(should_skip_encoding(8_000_000, 8_000_000))
        self.assertTrue(should_skip_encoding(8_400_000, 8_000_000))
        self.assertTrue(should_skip_encoding(2_000_000, 8_000_000))
        self.assertFalse(should_skip_encoding(8_400_001, 8_000_000))
        self.assertFalse(should_skip_encoding(24_000_000, 8_000_000))


if __name__ == '__main__':
    unittest.main()
