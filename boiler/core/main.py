"""
Main transcoding orchestration module for boiler.

For each video this module coordinates:
- Probing duration, resolution and source bitrate
- Target selection and the tolerance pre-check
- Sample quality search followed by full-file refinement passes
- Naming the result with its marker and cleaning up intermediates
"""

import argparse
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..config import get_config
from ..utils.logging import format_duration, get_logger, print_section_header, set_debug_mode, set_quiet_mode
from .modules.analysis.media_utils import bps_to_mbps, get_video_codec, is_codec_mp4_compatible
from .modules.errors import BoilerError, MeasurementUnavailable
from .modules.optimization.bitrate_targets import VideoAsset, resolve_target, should_skip_encoding
from .modules.optimization.multi_pass import MultiPassRefiner
from .modules.optimization.quality_search import SampleSearchLoop
from .modules.processing.file_manager import (
    FileManager, is_non_quicklook_format, original_output_path, transcoded_output_path, validate_depth
)
from .modules.processing.transcoding_engine import FFmpegBackend, remux_to_mp4
from .modules.system import system_utils
from .modules.system.system_utils import TEMP_FILES, file_exists, remove_file

logger = get_logger("boiler")

# Outcome statuses
KEPT = "kept"
TRANSCODED = "transcoded"
SKIPPED = "skipped"
DRY_RUN = "dry-run"


@dataclass
class FileOutcome:
    source: Path
    status: str
    output: Optional[Path] = None
    quality: Optional[int] = None
    bitrate: Optional[int] = None
    passes: int = 0


def probe_asset(source: Path, backend) -> VideoAsset:
    duration = backend.probe_duration(source)
    height = backend.probe_resolution(source)
    bitrate = backend.measure_bitrate(source, duration)
    if bitrate is None:
        raise MeasurementUnavailable(f"Could not determine bitrate of {source.name}", path=source)
    return VideoAsset(source, duration, height, bitrate)


def keep_original(asset: VideoAsset) -> Optional[Path]:
    """Mark an accepted source as ``.orig.``, remuxing non-QuickLook containers to MP4 when possible."""
    source = asset.path
    if is_non_quicklook_format(source) and is_codec_mp4_compatible(get_video_codec(source)):
        destination = original_output_path(source, asset.bitrate, "mp4")
        if file_exists(destination):
            logger.warn(f"Output file already exists: {destination.name}")
            return None
        logger.remux(f"Remuxing to: {destination.name}")
        remux_to_mp4(source, destination)
        remove_file(source)
        return destination

    destination = original_output_path(source, asset.bitrate)
    if file_exists(destination):
        logger.warn(f"Output file already exists: {destination.name}")
        return None
    source.rename(destination)
    return destination


def process_file(source: Path, backend, target_bps: Optional[int] = None,
                 dry_run: bool = False) -> FileOutcome:
    """Bring one file onto its target bitrate, or keep it when it already fits."""
    asset = probe_asset(source, backend)
    target = resolve_target(asset.height, target_bps)
    logger.info(f"Resolution {asset.height}p, duration {format_duration(asset.duration)}, "
                f"source {bps_to_mbps(asset.bitrate)} Mbps, "
                f"target {bps_to_mbps(target.bitrate)} Mbps "
                f"[{bps_to_mbps(target.lower)}-{bps_to_mbps(target.upper)}] ({target.source})")

    if should_skip_encoding(asset.bitrate, target.bitrate):
        logger.info("Source bitrate is within tolerance or below target, keeping original")
        if dry_run:
            return FileOutcome(source, DRY_RUN, bitrate=asset.bitrate)
        output = keep_original(asset)
        return FileOutcome(source, KEPT if output else SKIPPED, output, bitrate=asset.bitrate)

    if dry_run:
        return FileOutcome(source, DRY_RUN, bitrate=asset.bitrate)

    search = SampleSearchLoop(backend, source, asset.duration, target.bitrate)
    try:
        found = search.run()
    finally:
        for sample in search.sample_files:
            remove_file(sample)

    refiner = MultiPassRefiner(backend, source, asset.duration, target.bitrate)
    accepted = None
    try:
        final = refiner.refine(found.quality).final
        accepted = final.output
        destination = transcoded_output_path(source, final.bitrate)
        if file_exists(destination):
            logger.warn(f"Output file already exists: {destination.name}, discarding result")
            accepted = None
            return FileOutcome(source, SKIPPED, destination, final.quality, final.bitrate, final.number)
        if file_exists(accepted):
            shutil.move(str(accepted), str(destination))
        TEMP_FILES.discard(accepted)
    finally:
        for output in refiner.outputs:
            if output != accepted:
                remove_file(output)

    logger.result(f"{source.name}: quality {final.quality}, {bps_to_mbps(final.bitrate)} Mbps "
                  f"after {final.number} pass(es) -> {destination.name}")
    return FileOutcome(source, TRANSCODED, destination, final.quality, final.bitrate, final.number)


def run_batch(files: List[Path], backend, target_bps: Optional[int] = None,
              dry_run: bool = False) -> dict:
    """Process files one at a time; a failure only affects the file it happened on."""
    counts = {KEPT: 0, TRANSCODED: 0, SKIPPED: 0, DRY_RUN: 0, "failed": 0}
    for index, source in enumerate(files, start=1):
        logger.info(f"[{index}/{len(files)}] Processing: {source.name}")
        try:
            outcome = process_file(source, backend, target_bps, dry_run)
        except (BoilerError, OSError) as e:
            logger.error(f"{source.name}: {e}")
            counts["failed"] += 1
            continue
        counts[outcome.status] += 1
    return counts


def _depth_arg(value: str) -> int:
    depth = validate_depth(value)
    if depth is None:
        raise argparse.ArgumentTypeError(
            f"Invalid depth value '{value}' (non-negative integer, 0 for unlimited)")
    return depth


def _target_arg(value: str) -> float:
    try:
        mbps = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid target bitrate '{value}'")
    if mbps <= 0:
        raise argparse.ArgumentTypeError("Target bitrate must be greater than 0")
    return mbps


def build_parser(config: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boiler",
        description="Transcode videos to HEVC at a target bitrate by searching the encoder quality value")
    parser.add_argument("files", nargs="*", metavar="FILE",
                        help="Files to process (default: discover video files under the current directory)")
    parser.add_argument("-t", "--target-bitrate", type=_target_arg, metavar="MBPS",
                        default=config.get("target_bitrate_mbps"),
                        help="Explicit target bitrate in Mbps (default: by resolution)")
    parser.add_argument("-L", "--max-depth", type=_depth_arg, metavar="DEPTH",
                        default=config.get("max_depth", 2),
                        help="Directory depth to traverse, 0 for unlimited (default: 2)")
    parser.add_argument("--encoder", default=config.get("encoder"),
                        help="ffmpeg video encoder (default: %(default)s)")
    parser.add_argument("--cleanup-temp", action="store_true",
                        help="Remove sample/pass files left by interrupted runs before starting")
    parser.add_argument("--dry-run", action="store_true", help="Probe and report without encoding")
    parser.add_argument("--debug", action="store_true", default=config.get("debug", False),
                        help="Enable debug output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the boiler command."""
    args = build_parser(get_config()).parse_args(argv)

    if args.debug:
        set_debug_mode(True)
        system_utils.DEBUG = True
    if args.quiet:
        set_quiet_mode(True)

    base_path = Path.cwd()
    file_manager = FileManager(max_depth=args.max_depth, debug=args.debug)
    if args.cleanup_temp:
        file_manager.scavenge_temp_files(base_path)

    files = file_manager.collect_files(args.files, base_path)
    if not files:
        logger.info("No files to process")
        return 0

    target_bps = round(args.target_bitrate * 1_000_000) if args.target_bitrate else None
    print_section_header(f"BOILER - {len(files)} file(s)")
    counts = run_batch(files, FFmpegBackend(args.encoder), target_bps, args.dry_run)

    logger.info("Summary:")
    logger.info(f"  Transcoded: {counts[TRANSCODED]}")
    logger.info(f"  Kept as original: {counts[KEPT]}")
    if counts[DRY_RUN]:
        logger.info(f"  Dry run: {counts[DRY_RUN]}")
    if counts[SKIPPED]:
        logger.warn(f"  Skipped: {counts[SKIPPED]}")
    if counts["failed"]:
        logger.error(f"  Failed: {counts['failed']}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
