"""
Unit tests for media_utils module.

Tests ffprobe field extraction, bitrate parsing and formatting, and the
size/duration fallback used when a stream carries no bitrate metadata.
"""

import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from boiler.core.modules.analysis.media_utils import (
    bps_to_mbps, ffprobe_field, get_duration_sec, get_video_codec,
    is_codec_mp4_compatible, measure_bitrate, parse_bitrate, probe_duration, probe_resolution
)
from boiler.core.modules.errors import ProbeError


class TestParseBitrate(unittest.TestCase):
    """Test parsing of bitrates printed by external tools."""

    def test_plain_integer(self):
        self.assertEqual(parse_bitrate("8000000"), 8_000_000)

    def test_strips_whitespace_and_line_endings(self):
        self.assertEqual(parse_bitrate(" 8000000\r\n"), 8_000_000)

    def test_decimal_value_is_truncated(self):
        self.assertEqual(parse_bitrate("5000000.7"), 5_000_000)

    def test_unusable_values(self):
        for value in (None, "", "   ", "N/A", "n/a", "abc", "0", "-5"):
            with self.subTest(value=value):
                self.assertIsNone(parse_bitrate(value))

    def test_numeric_input(self):
        self.assertEqual(parse_bitrate(2_500_000), 2_500_000)
        self.assertIsNone(parse_bitrate(0))


class TestBpsToMbps(unittest.TestCase):

    def test_two_decimals(self):
        self.assertEqual(bps_to_mbps(8_000_000), "8.00")
        self.assertEqual(bps_to_mbps(11_234_567), "11.23")
        self.assertEqual(bps_to_mbps(2_500_000), "2.50")

    def test_string_input(self):
        self.assertEqual(bps_to_mbps(" 5000000\n"), "5.00")

    def test_zero(self):
        self.assertEqual(bps_to_mbps(0), "0.00")


class TestFfprobe(unittest.TestCase):
    """Test ffprobe wrappers with subprocess mocked out."""

    def setUp(self):
        self.test_file = Path("test_video.mkv")

    @patch('subprocess.check_output')
    def test_ffprobe_field_success(self, mock_check_output):
        mock_check_output.return_value = "1080\n"

        result = ffprobe_field(self.test_file, "height")

        self.assertEqual(result, "1080")
        args = mock_check_output.call_args[0][0]
        self.assertEqual(args[0], "ffprobe")
        self.assertIn("stream=height", args)
        self.assertEqual(args[-1], str(self.test_file))

    @patch('subprocess.check_output')
    def test_ffprobe_field_unknown_value(self, mock_check_output):
        mock_check_output.return_value = "N/A\n"
        self.assertIsNone(ffprobe_field(self.test_file, "bit_rate"))

    @patch('subprocess.check_output')
    def test_ffprobe_field_error(self, mock_check_output):
        mock_check_output.side_effect = subprocess.CalledProcessError(1, 'ffprobe')
        self.assertIsNone(ffprobe_field(self.test_file, "height"))

    @patch('subprocess.check_output')
    def test_ffprobe_missing_binary(self, mock_check_output):
        mock_check_output.side_effect = FileNotFoundError("ffprobe")
        self.assertIsNone(ffprobe_field(self.test_file, "height"))

    @patch('subprocess.check_output')
    def test_get_duration_sec(self, mock_check_output):
        mock_check_output.return_value = "3600.5\n"
        self.assertEqual(get_duration_sec(self.test_file), 3600.5)

    @patch('subprocess.check_output')
    def test_probe_duration_raises_when_unknown(self, mock_check_output):
        mock_check_output.return_value = "N/A\n"
        with self.assertRaises(ProbeError):
            probe_duration(self.test_file)

    @patch('subprocess.check_output')
    def test_probe_resolution(self, mock_check_output):
        mock_check_output.return_value = "2160\n"
        self.assertEqual(probe_resolution(self.test_file), 2160)

        mock_check_output.return_value = ""
        with self.assertRaises(ProbeError):
            probe_resolution(self.test_file)

    @patch('subprocess.check_output')
    def test_get_video_codec_lowercases(self, mock_check_output):
        mock_check_output.return_value = "HEVC\n"
        self.assertEqual(get_video_codec(self.test_file), "hevc")


class TestCodecCompatibility(unittest.TestCase):

    def test_compatible_codecs(self):
        for codec in ("h264", "hevc", "mpeg4", "AV1"):
            with self.subTest(codec=codec):
                self.assertTrue(is_codec_mp4_compatible(codec))

    def test_incompatible_codecs(self):
        for codec in ("wmv3", "vc1", "rv40", "theora", "WMV2"):
            with self.subTest(codec=codec):
                self.assertFalse(is_codec_mp4_compatible(codec))

    def test_unknown_codec(self):
        self.assertFalse(is_codec_mp4_compatible(None))


class TestMeasureBitrate(unittest.TestCase):
    """Test stream metadata first, file size second."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.video = self.temp_dir / "clip.mp4"
        # 1,000,000 bytes -> 8,000,000 bits
        self.video.write_bytes(b"\0" * 1_000_000)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    @patch('boiler.core.modules.analysis.media_utils.ffprobe_field')
    def test_stream_metadata_wins(self, mock_field):
        mock_field.return_value = "6000000"
        self.assertEqual(measure_bitrate(self.video, 10.0), 6_000_000)

    @patch('boiler.core.modules.analysis.media_utils.ffprobe_field')
    def test_size_fallback(self, mock_field):
        mock_field.return_value = None
        self.assertEqual(measure_bitrate(self.video, 2.0), 4_000_000)

    @patch('boiler.core.modules.analysis.media_utils.ffprobe_field')
    def test_no_duration_no_fallback(self, mock_field):
        mock_field.return_value = None
        self.assertIsNone(measure_bitrate(self.video, 0))
        self.assertIsNone(measure_bitrate(self.video, None))

    @patch('boiler.core.modules.analysis.media_utils.ffprobe_field')
    def test_missing_file(self, mock_field):
        mock_field.return_value = None
        self.assertIsNone(measure_bitrate(self.temp_dir / "missing.mp4", 10.0))


if __name__ == '__main__':
    unittest.main()
