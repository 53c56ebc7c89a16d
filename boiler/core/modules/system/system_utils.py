"""
System utilities for boiler.

This module provides system-level utilities including:
- Subprocess execution with consistent error handling
- Temporary file tracking and cleanup
- File system helpers
- Size formatting
"""

import os
import sys
import shlex
import signal
import atexit
import subprocess
from pathlib import Path
from typing import Optional

from ....utils.logging import get_logger

logger = get_logger("system_utils")


class _TempFilesList(list):
    """Ordered registry of temporary paths with unique membership."""

    def __init__(self):
        super().__init__()
        self._membership: set[str] = set()

    def append(self, item):  # type: ignore[override]
        key = str(item)
        if key not in self._membership:
            self._membership.add(key)
            super().append(item)

    def add(self, item):
        self.append(item)

    def __contains__(self, item):
        return str(item) in self._membership

    def discard(self, item):
        key = str(item)
        self._membership.discard(key)
        for i, existing in enumerate(list(self)):
            if str(existing) == key:
                del self[i]
                break

    def clear(self):  # type: ignore[override]
        self._membership.clear()
        super().clear()


TEMP_FILES = _TempFilesList()
DEBUG = False  # Set by --debug flag


def file_exists(path: "str | os.PathLike[str] | Path") -> bool:
    """Thin existence wrapper to provide a stable patch point for tests."""
    try:
        return Path(path).exists()
    except OSError:
        return False


def remove_file(path: "str | Path") -> bool:
    """Remove a file if present and drop it from the temp registry."""
    removed = False
    try:
        if file_exists(path):
            os.remove(str(path))
            removed = True
            logger.debug(f"Removed {path}")
    except OSError as e:
        logger.warn(f"Could not remove {path}: {e}")
    finally:
        TEMP_FILES.discard(path)
    return removed


def _cleanup():
    """Cleanup temporary files on exit"""
    for f in list(TEMP_FILES):
        if remove_file(f):
            logger.cleanup(f"removed {f}")
    TEMP_FILES.clear()


atexit.register(_cleanup)
for sig in (signal.SIGINT, signal.SIGTERM):
    signal.signal(sig, lambda s, f: sys.exit(1))


def run_command(cmd: list[str], timeout: Optional[int] = 30, capture_output: bool = True,
                text: bool = True, check: bool = False) -> subprocess.CompletedProcess:
    """
    Standardized subprocess command runner with consistent error handling.

    Args:
        cmd: Command as list of strings
        timeout: Timeout in seconds (default: 30, None waits forever)
        capture_output: Whether to capture stdout/stderr (default: True)
        text: Whether to use text mode (default: True)
        check: Whether to raise exception on non-zero exit (default: False)

    Returns:
        CompletedProcess object
    """
    logger.cmd(" ".join(shlex.quote(c) for c in cmd))
    try:
        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=text,
            timeout=timeout,
            check=check
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: {' '.join(cmd[:3])}...")
        raise
    except subprocess.CalledProcessError as e:
        if DEBUG:
            logger.error(f"Command failed: {' '.join(cmd[:3])}... (exit code: {e.returncode})")
        raise


def format_size(bytes_size: int) -> str:
    """Convert bytes to human readable format:
    - Bytes: integer no decimal ("500 B", "0 B")
    - >= KB: two decimals ("1.50 KB", "2.00 MB")
    """
    negative = bytes_size < 0
    size = float(abs(bytes_size))
    units = ['B', 'KB', 'MB', 'GB', 'TB', 'PB']
    unit_index = 0
    while unit_index < len(units) - 1 and size >= 1024.0:
        size /= 1024.0
        unit_index += 1
    unit = units[unit_index]
    if unit == 'B':
        formatted = f"{int(size)} {unit}"
    else:
        formatted = f"{size:.2f} {unit}"
    return f"-{formatted}" if negative else formatted
