"""
Move original videos (files without a ``.orig.``, ``.fmpg.`` or ``.hbrk.``
marker) to the trash. Whether a transcoded counterpart exists is not checked;
the listing and confirmation prompt are the safeguard.
"""

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional

from ..config import get_config
from ..utils.logging import get_logger
from .main import _depth_arg
from .modules.processing.file_manager import FileManager
from .modules.system.system_utils import format_size

logger = get_logger("cleanup")


def find_originals(file_manager: FileManager, base_path: Path) -> List[Path]:
    result = file_manager.discover_video_files(base_path)
    if result.marked_files:
        logger.info(f"{len(result.marked_files)} transcoded file(s) carry a marker and are kept")
    return result.files


def confirm(prompt: str, reader: Optional[Callable[[str], str]] = None) -> bool:
    try:
        answer = (reader or input)(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def main(argv: Optional[List[str]] = None) -> int:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="boiler-cleanup",
        description="Move original video files (without transcoding markers) to the trash")
    parser.add_argument("-L", "--max-depth", type=_depth_arg, metavar="DEPTH",
                        default=config.get("max_depth", 2),
                        help="Directory depth to scan, 0 for unlimited (default: 2)")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    args = parser.parse_args(argv)

    file_manager = FileManager(max_depth=args.max_depth)
    logger.cleanup("Scanning directories for original video files...")
    originals = find_originals(file_manager, Path.cwd())
    if not originals:
        logger.info("No original video files found (all files have transcoding markers)")
        return 0

    logger.warn(f"Found {len(originals)} original video file(s) to move to trash:")
    for path in originals:
        print(f"  - {path} ({format_size(path.stat().st_size)})")

    if not args.yes and not confirm("Move these files to trash? (y/N): "):
        logger.info("Cancelled.")
        return 0

    moved = failed = 0
    for path in originals:
        if file_manager.move_to_trash(path):
            logger.cleanup(f"Moved to trash: {path}")
            moved += 1
        else:
            logger.error(f"Failed to move to trash: {path}")
            failed += 1

    if failed:
        logger.warn(f"Cleanup complete with errors. Moved {moved} file(s) to trash, {failed} failed.")
        return 1
    logger.info(f"Cleanup complete! Moved {moved} file(s) to trash.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
