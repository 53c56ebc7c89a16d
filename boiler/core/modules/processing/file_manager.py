"""
File Processing Workflows Module

Centralizes everything boiler does with file names and directories:
- Video discovery with a depth limit and extension filtering
- Hidden file and temporary artifact filtering
- Transcoding markers (``.orig.``, ``.fmpg.``, ``.hbrk.``) and output naming
- Stale temporary file scavenging
- Moving originals to the trash
"""

import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from ....utils.logging import get_logger
from ..analysis.media_utils import bps_to_mbps
from ..system.system_utils import remove_file, run_command

logger = get_logger("file_manager")

VIDEO_EXTENSIONS = ("mp4", "mkv", "avi", "mov", "m4v", "webm", "flv", "wmv")
NON_QUICKLOOK_EXTENSIONS = ("mkv", "wmv", "avi", "webm", "flv")
TRANSCODING_MARKERS = (".orig.", ".fmpg.", ".hbrk.")

# Names written by transcoding_engine.sample_path and pass_path
SAMPLE_ARTIFACT_RE = re.compile(r"^(?P<stem>.+)_sample_\d+\.mp4$")
PASS_ARTIFACT_RE = re.compile(r"^(?P<stem>.+)\.temp_transcode\.pass[1-3]\.mp4$")


def parse_filename(filename: str) -> Tuple[str, str]:
    """Split a file name at its last dot. A name without a dot returns itself for both parts."""
    name = Path(filename).name
    if "." in name:
        base, ext = name.rsplit(".", 1)
        return base, ext
    return name, name


def has_transcoding_marker(path: Path) -> bool:
    return any(marker in path.name for marker in TRANSCODING_MARKERS)


def is_non_quicklook_format(path: Path) -> bool:
    return path.suffix.lower().lstrip(".") in NON_QUICKLOOK_EXTENSIONS


def artifact_source_stem(path: Path) -> Optional[str]:
    """Stem of the source a sample or pass output was generated from, None for any other name."""
    for pattern in (SAMPLE_ARTIFACT_RE, PASS_ARTIFACT_RE):
        match = pattern.match(path.name)
        if match:
            return match.group("stem")
    return None


def is_temp_artifact(path: Path) -> bool:
    """Name matches a sample excerpt or pass output exactly as the encoder writes them."""
    return artifact_source_stem(path) is not None


def is_own_artifact(path: Path) -> bool:
    """A generated name whose source video still sits beside it."""
    stem = artifact_source_stem(path)
    if stem is None:
        return False
    try:
        siblings = list(path.parent.iterdir())
    except OSError:
        return False
    return any(
        sibling != path and sibling.stem == stem and sibling.is_file()
        and sibling.suffix.lower().lstrip(".") in VIDEO_EXTENSIONS
        for sibling in siblings
    )


def original_output_path(source: Path, bitrate_bps: int, extension: Optional[str] = None) -> Path:
    """``{base}.orig.{mbps}.Mbps.{ext}`` beside the source."""
    base, ext = parse_filename(source.name)
    return source.with_name(f"{base}.orig.{bps_to_mbps(bitrate_bps)}.Mbps.{extension or ext}")


def transcoded_output_path(source: Path, bitrate_bps: int) -> Path:
    """``{base}.fmpg.{mbps}.Mbps.mp4`` beside the source."""
    base, _ = parse_filename(source.name)
    return source.with_name(f"{base}.fmpg.{bps_to_mbps(bitrate_bps)}.Mbps.mp4")


def validate_depth(value: str) -> Optional[int]:
    """Parse a depth limit: a non-negative integer, 0 meaning unlimited."""
    cleaned = value.strip() if value else ""
    return int(cleaned) if cleaned.isdigit() else None


@dataclass
class FileDiscoveryResult:
    """Result of file discovery operation."""
    files: List[Path] = field(default_factory=list)
    marked_files: List[Path] = field(default_factory=list)
    hidden_files_skipped: int = 0
    artifacts_skipped: int = 0
    total_files_found: int = 0


class FileManager:
    """Discovery, naming and trash handling for a directory tree."""

    def __init__(self, max_depth: int = 2, debug: bool = False):
        self.max_depth = max_depth
        self.debug = debug

    def _within_depth(self, base_path: Path, path: Path) -> bool:
        if self.max_depth == 0:
            return True
        return len(path.relative_to(base_path).parts) <= self.max_depth

    def discover_video_files(self, base_path: Path,
                             extensions: Tuple[str, ...] = VIDEO_EXTENSIONS) -> FileDiscoveryResult:
        """
        Discover video files below ``base_path`` up to the depth limit.

        Depth 1 is ``base_path`` itself, 2 adds one level of subdirectories,
        0 is unlimited. Files with a transcoding marker are reported separately.
        """
        if not base_path.is_dir():
            raise ValueError(f"Path not found: {base_path}")

        wanted = {ext.lower() for ext in extensions}
        found = sorted(
            p for p in base_path.rglob("*")
            if p.is_file() and p.suffix.lower().lstrip(".") in wanted and self._within_depth(base_path, p)
        )
        result = FileDiscoveryResult(total_files_found=len(found))

        for path in found:
            if path.name.startswith("."):
                result.hidden_files_skipped += 1
            elif is_own_artifact(path):
                result.artifacts_skipped += 1
            elif has_transcoding_marker(path):
                result.marked_files.append(path)
            else:
                result.files.append(path)

        logger.discovery(f"{len(result.files)} video file(s), {len(result.marked_files)} already marked")
        if self.debug:
            logger.debug(f"Found {len(found)} files under {base_path} (depth {self.max_depth or 'unlimited'})")
        return result

    def collect_files(self, specified: List[str], base_path: Path,
                      extensions: Tuple[str, ...] = VIDEO_EXTENSIONS) -> List[Path]:
        """Explicit file arguments win; otherwise discover under ``base_path``."""
        if not specified:
            return self.discover_video_files(base_path, extensions).files

        files = []
        for name in specified:
            path = Path(name)
            if not path.is_file():
                logger.warn(f"File not found: {name}")
            elif path.suffix.lower().lstrip(".") not in extensions:
                logger.warn(f"Skipping {name}: not a supported format ({', '.join(extensions)})")
            else:
                files.append(path)
        return files

    def scavenge_temp_files(self, base_path: Path) -> int:
        """Remove sample and pass outputs left behind by interrupted runs."""
        removed = 0
        for path in sorted(base_path.rglob("*.mp4")):
            if self._within_depth(base_path, path) and is_own_artifact(path):
                if remove_file(path):
                    logger.cleanup(f"removed stale {path.name}")
                    removed += 1
        return removed

    def move_to_trash(self, path: Path) -> bool:
        """Move a file to the trash via ``trash`` (macOS 15+) or Finder through osascript."""
        if shutil.which("trash"):
            cmd = ["trash", str(path)]
        else:
            script = f'tell application "Finder" to move POSIX file "{path.resolve()}" to trash'
            cmd = ["osascript", "-e", script]
        try:
            result = run_command(cmd)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Could not run {cmd[0]}: {e}")
            return False
        return result.returncode == 0
