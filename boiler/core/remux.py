"""
Remux-only workflow: move non-QuickLook containers (mkv, wmv, avi, webm, flv)
into MP4 without transcoding, naming the result ``{base}.orig.{mbps}.Mbps.mp4``.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from ..config import get_config
from ..utils.logging import get_logger, set_debug_mode
from .main import _depth_arg
from .modules.analysis.media_utils import (
    bps_to_mbps, get_video_codec, is_codec_mp4_compatible, measure_bitrate, probe_duration
)
from .modules.errors import BoilerError, MeasurementUnavailable, ProbeError
from .modules.processing.file_manager import NON_QUICKLOOK_EXTENSIONS, FileManager, original_output_path
from .modules.processing.transcoding_engine import remux_to_mp4
from .modules.system.system_utils import file_exists, remove_file

logger = get_logger("remux")


def remux_file(source: Path) -> Optional[Path]:
    """Remux one file; returns the new path, or None when it was skipped."""
    codec = get_video_codec(source)
    if not codec:
        raise ProbeError(f"Could not detect video codec for {source.name}")
    if not is_codec_mp4_compatible(codec):
        logger.warn(f"Codec '{codec}' is not MP4-compatible, skipping (would require transcoding)")
        return None

    duration = probe_duration(source)
    bitrate = measure_bitrate(source, duration)
    if bitrate is None:
        raise MeasurementUnavailable(f"Could not determine bitrate of {source.name}", path=source)

    destination = original_output_path(source, bitrate, "mp4")
    if file_exists(destination):
        logger.warn(f"Output file already exists: {destination.name}, skipping")
        return None

    logger.remux(f"Remuxing to: {destination.name} ({bps_to_mbps(bitrate)} Mbps)")
    remux_to_mp4(source, destination)
    remove_file(source)
    return destination


def main(argv: Optional[List[str]] = None) -> int:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="boiler-remux",
        description="Remux video files to MP4 with .orig.{bitrate}.Mbps naming (no transcoding)")
    parser.add_argument("files", nargs="*", metavar="FILE",
                        help="Files to remux (default: discover mkv, wmv, avi, webm, flv files)")
    parser.add_argument("-L", "--max-depth", type=_depth_arg, metavar="DEPTH",
                        default=config.get("max_depth", 2),
                        help="Directory depth to traverse, 0 for unlimited (default: 2)")
    parser.add_argument("--debug", action="store_true", default=config.get("debug", False))
    args = parser.parse_args(argv)

    if args.debug:
        set_debug_mode(True)

    file_manager = FileManager(max_depth=args.max_depth, debug=args.debug)
    files = file_manager.collect_files(args.files, Path.cwd(), NON_QUICKLOOK_EXTENSIONS)
    if not files:
        logger.info("No files to process")
        return 0

    logger.info(f"Found {len(files)} file(s) to remux...")
    processed = skipped = failed = 0
    for source in files:
        logger.info(f"Processing: {source.name}")
        try:
            if remux_file(source):
                processed += 1
            else:
                skipped += 1
        except (BoilerError, OSError) as e:
            logger.error(f"  {e}, original file preserved")
            failed += 1

    logger.info("Summary:")
    logger.info(f"  Processed: {processed}")
    if skipped:
        logger.warn(f"  Skipped: {skipped}")
    if failed:
        logger.error(f"  Failed: {failed}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
