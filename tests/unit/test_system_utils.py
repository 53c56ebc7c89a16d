"""
Unit tests for system_utils module.

Tests the temp file registry, file removal, command execution and size
formatting.
"""

import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from boiler.core.modules.system.system_utils import (
    TEMP_FILES, _cleanup, file_exists, format_size, remove_file, run_command
)


class TestTempFiles(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        TEMP_FILES.clear()

    def tearDown(self):
        TEMP_FILES.clear()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_registry_is_unique(self):
        path = self.test_dir / "a_sample_0.mp4"
        TEMP_FILES.add(path)
        TEMP_FILES.add(path)
        TEMP_FILES.append(str(path))
        self.assertEqual(len(TEMP_FILES), 1)

        TEMP_FILES.discard(str(path))
        self.assertEqual(len(TEMP_FILES), 0)

    def test_remove_file(self):
        path = self.test_dir / "a.temp_transcode.pass1.mp4"
        path.touch()
        TEMP_FILES.add(path)

        self.assertTrue(remove_file(path))
        self.assertFalse(path.exists())
        self.assertNotIn(path, TEMP_FILES)
        self.assertFalse(remove_file(path))

    def test_cleanup_on_exit(self):
        paths = [self.test_dir / f"movie_sample_{n}.mp4" for n in (30, 150, 240)]
        for path in paths:
            path.touch()
            TEMP_FILES.add(path)

        _cleanup()

        self.assertFalse(any(p.exists() for p in paths))
        self.assertEqual(len(TEMP_FILES), 0)

    def test_file_exists(self):
        self.assertTrue(file_exists(self.test_dir))
        self.assertFalse(file_exists(self.test_dir / "missing"))


class TestRunCommand(unittest.TestCase):

    @patch('subprocess.run')
    def test_run_command(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(["ffprobe"], 0, "ok", "")

        result = run_command(["ffprobe", "-version"], timeout=None)

        self.assertEqual(result.stdout, "ok")
        mock_run.assert_called_once_with(["ffprobe", "-version"], capture_output=True,
                                         text=True, timeout=None, check=False)

    @patch('subprocess.run', side_effect=subprocess.TimeoutExpired("ffmpeg", 30))
    def test_timeout_propagates(self, mock_run):
        with self.assertRaises(subprocess.TimeoutExpired):
            run_command(["ffmpeg"])


class TestFormatSize(unittest.TestCase):

    def test_format_size(self):
        self.assertEqual(format_size(500), "500 B")
        self.assertEqual(format_size(1536), "1.50 KB")
        self.assertEqual(format_size(1572864), "1.50 MB")
        self.assertEqual(format_size(-2048), "-2.00 KB")


if __name__ == '__main__':
    unittest.main()
