"""
Media utilities for boiler.

This module provides media-specific utilities including:
- FFprobe operations for video metadata (duration, resolution, codec)
- Bitrate measurement with a size/duration fallback
- Parsing of the textual numbers ffprobe prints
"""

import subprocess
from pathlib import Path
from typing import Optional

from ....utils.logging import get_logger
from ..errors import ProbeError
from ..system.system_utils import file_exists

logger = get_logger("media_utils")

# Codecs that cannot be stream-copied into an MP4 container
MP4_INCOMPATIBLE_CODECS = {'wmv1', 'wmv2', 'wmv3', 'vc1', 'rv30', 'rv40', 'theora'}


def parse_bitrate(text: "str | int | float | None") -> Optional[int]:
    """Parse a bitrate as printed by external tools.

    Strips whitespace and CR/LF noise. Returns None for empty, ``N/A``,
    non-numeric or non-positive values.
    """
    if text is None:
        return None
    if isinstance(text, (int, float)):
        value = int(text)
        return value if value > 0 else None
    cleaned = "".join(text.split())
    if not cleaned or cleaned.lower() == "n/a":
        return None
    try:
        value = int(float(cleaned))
    except ValueError:
        return None
    return value if value > 0 else None


def bps_to_mbps(bps: "int | float | str") -> str:
    """Bits per second to megabits per second with two decimals ("8000000" -> "8.00")."""
    if isinstance(bps, str):
        bps = float("".join(bps.split()) or 0)
    return f"{bps / 1_000_000:.2f}"


def ffprobe_field(file: Path, key: str) -> Optional[str]:
    """Get a specific field from the first video stream using ffprobe."""
    cmd = [
        "ffprobe", "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", f"stream={key}",
        "-of", "default=nk=1:nw=1",
        "-i", str(file)
    ]
    try:
        out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
    lines = [line.strip() for line in out.splitlines() if line.strip()]
    if not lines:
        return None
    value = lines[0]
    return None if value.lower() in ("unknown", "n/a") else value


def get_duration_sec(file: Path) -> float:
    """Container duration in seconds, 0.0 when ffprobe cannot tell."""
    cmd = [
        "ffprobe", "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        "-i", str(file)
    ]
    try:
        result = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True).strip()
        return float(result) if result and result.lower() != "n/a" else 0.0
    except (subprocess.CalledProcessError, FileNotFoundError, ValueError):
        return 0.0


def probe_duration(file: Path) -> float:
    """Duration in seconds; raises ProbeError when unknown."""
    duration = get_duration_sec(file)
    if duration <= 0:
        raise ProbeError(f"Could not determine video duration: {file.name}")
    return duration


def probe_resolution(file: Path) -> int:
    """Vertical resolution in pixels; raises ProbeError when unknown."""
    height = ffprobe_field(file, "height")
    if not height or not height.isdigit():
        raise ProbeError(f"Could not determine video resolution: {file.name}")
    return int(height)


def get_video_codec(file: Path) -> Optional[str]:
    """Get the lower-cased video codec name from a file"""
    codec = ffprobe_field(file, "codec_name")
    return codec.lower() if codec else None


def is_codec_mp4_compatible(codec: Optional[str]) -> bool:
    """Check if a video codec can be copied into an MP4 container without transcoding"""
    if not codec:
        return False
    return codec.lower() not in MP4_INCOMPATIBLE_CODECS


def measure_bitrate(file: Path, duration: Optional[float]) -> Optional[int]:
    """
    Measure the video bitrate of a file in bits per second.

    Uses the stream's ``bit_rate`` metadata when present, otherwise falls back
    to ``file size * 8 / duration``. Returns None when neither works.
    """
    stream_bitrate = parse_bitrate(ffprobe_field(file, "bit_rate"))
    if stream_bitrate is not None:
        return stream_bitrate

    if duration is None or duration <= 0 or not file_exists(file):
        return None
    try:
        size = file.stat().st_size
    except OSError:
        return None
    if size <= 0:
        return None
    bitrate = int(size * 8 / duration)
    logger.debug(f"Bitrate of {file.name} from size fallback: {bitrate} bps")
    return bitrate if bitrate > 0 else None
