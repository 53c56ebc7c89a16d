"""
Remux with audio track selection.

Lists the audio tracks of each file, asks which to keep and stream-copies the
file into ``{base}.remux.{ext}`` next to it, dropping the rest (commentary,
extra languages). The output container follows the input so subtitles survive:
MKV stays MKV, MP4/M4V/MOV become MP4, WebM stays WebM and anything else is
written as Matroska.
"""

import argparse
import csv
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..config import get_config
from ..utils.logging import get_logger, set_debug_mode
from .main import _depth_arg
from .modules.analysis.media_utils import get_duration_sec, get_video_codec, is_codec_mp4_compatible
from .modules.errors import BoilerError, ProbeError, RemuxError, SelectionError
from .modules.processing.file_manager import FileManager
from .modules.processing.transcoding_engine import HEVC_CODECS, run_ffmpeg_with_progress
from .modules.system.system_utils import file_exists, remove_file, run_command

logger = get_logger("remux_audio")

AUDIO_REMUX_EXTENSIONS = ("mkv", "mp4", "m4v", "mov", "webm", "avi", "wmv", "flv",
                          "mpg", "mpeg", "ts", "m2ts")
MP4_SUBTITLE_CODECS = {"mov_text"}

# Input extension -> (ffmpeg muxer, output extension)
OUTPUT_FORMATS = {
    "mkv": ("matroska", "mkv"),
    "mp4": ("mp4", "mp4"),
    "m4v": ("mp4", "mp4"),
    "mov": ("mp4", "mp4"),
    "webm": ("webm", "webm"),
}
DEFAULT_OUTPUT_FORMAT = ("matroska", "mkv")

Reader = Callable[[str], str]


def output_format_for(path: Path) -> Tuple[str, str]:
    return OUTPUT_FORMATS.get(path.suffix.lower().lstrip("."), DEFAULT_OUTPUT_FORMAT)


def remux_output_path(source: Path, ext: str) -> Path:
    return source.with_name(f"{source.stem or 'output'}.remux.{ext}")


def probe_streams(file: Path, selector: str, entries: str) -> List[List[str]]:
    """One CSV row per stream of the selected type, in stream order. Empty when ffprobe fails."""
    cmd = [
        "ffprobe", "-v", "error",
        "-select_streams", selector,
        "-show_entries", entries,
        "-of", "csv=p=0",
        str(file)
    ]
    try:
        result = run_command(cmd)
    except (OSError, subprocess.TimeoutExpired):
        return []
    if result.returncode != 0:
        return []
    lines = [line for line in result.stdout.splitlines() if line.strip()]
    return [[value.strip() for value in row] for row in csv.reader(lines)]


def count_streams(file: Path, selector: str) -> int:
    return len(probe_streams(file, selector, "stream=index"))


def _tag(value: str) -> str:
    return "" if value == "N/A" else value


def audio_track_labels(file: Path) -> List[str]:
    """``codec (lang) - title`` per audio track; missing tags are left out."""
    labels = []
    for row in probe_streams(file, "a", "stream=codec_name:stream_tags=language,title"):
        codec, lang, title = (row + ["", "", ""])[:3]
        label = codec
        if _tag(lang):
            label += f" ({lang})"
        if _tag(title):
            label += f" - {title}"
        labels.append(label)
    return labels


def video_stream_labels(file: Path) -> List[str]:
    """``codec (title)`` per video stream, falling back to the attachment filename."""
    labels = []
    for row in probe_streams(file, "v", "stream=codec_name:stream_tags=title,filename"):
        codec, title, filename = (row + ["", "", ""])[:3]
        name = _tag(title) or _tag(filename)
        labels.append(f"{codec} ({name})" if name else codec)
    return labels


def muxable_video_indices(file: Path) -> List[int]:
    """Video streams with real dimensions; attached pictures report none and break the muxer."""
    indices = []
    for index, row in enumerate(probe_streams(file, "v", "stream=width,height")):
        width, height = (row + ["", ""])[:2]
        if width.isdigit() and height.isdigit() and int(width) > 0 and int(height) > 0:
            indices.append(index)
    return indices


def subtitle_codecs(file: Path) -> List[str]:
    return [row[0].lower() for row in probe_streams(file, "s", "stream=codec_name") if row]


def parse_selection(text: str, track_count: int) -> List[int]:
    """
    Turn the user's answer into 0-based audio indices, in the order typed.

    Empty input or ``all`` keeps every track. Otherwise numbers are 1-based and
    separated by commas and/or spaces; duplicates are ignored.
    """
    text = text.strip()
    if not text or text.lower() == "all":
        return list(range(track_count))

    selected = []
    for token in text.replace(",", " ").split():
        if not token.isdigit():
            raise SelectionError(f"Invalid input: '{token}' is not a number.")
        number = int(token)
        if not 1 <= number <= track_count:
            raise SelectionError(f"Track number {number} is out of range (1 to {track_count}).")
        if number - 1 not in selected:
            selected.append(number - 1)
    if not selected:
        raise SelectionError("You must keep at least one audio track (or use 'all').")
    return selected


def build_audio_remux_cmd(infile: Path, outfile: Path, muxer: str, audio_indices: List[int],
                          video_indices: List[int], subtitle_indices: Optional[List[int]] = None,
                          hevc_tag: bool = False) -> List[str]:
    """
    Stream-copy command keeping the given streams.

    ``subtitle_indices`` of None maps every subtitle stream (when there are any).
    """
    cmd = ["ffmpeg", "-hide_banner", "-y", "-loglevel", "error", "-i", str(infile)]
    for index in video_indices:
        cmd += ["-map", f"0:v:{index}"]
    for index in audio_indices:
        cmd += ["-map", f"0:a:{index}"]
    if subtitle_indices is None:
        cmd += ["-map", "0:s?"]
    else:
        for index in subtitle_indices:
            cmd += ["-map", f"0:s:{index}"]
    cmd += ["-c", "copy", "-f", muxer]
    if muxer == "mp4":
        cmd += ["-movflags", "+faststart"]
        if hevc_tag:
            cmd += ["-tag:v", "hvc1"]
    cmd.append(str(outfile))
    return cmd


def ask(prompt: str, reader: Optional[Reader] = None) -> str:
    try:
        return (reader or input)(prompt).strip()
    except EOFError:
        return ""


def remux_audio_file(source: Path, reader: Optional[Reader] = None) -> Optional[Path]:
    """
    Prompt for the audio tracks of one file and remux it.

    Returns the new file, or None when there was nothing to do or the user
    aborted. Raises BoilerError when the file cannot be remuxed; the original
    is never touched.
    """
    muxer, ext = output_format_for(source)
    to_mp4 = muxer == "mp4"

    if count_streams(source, "a") < 2:
        logger.info("Fewer than two audio tracks; nothing to select")
        return None

    codec = get_video_codec(source)
    if not codec:
        raise ProbeError(f"Could not determine video codec for {source.name}")
    if to_mp4 and not is_codec_mp4_compatible(codec):
        raise RemuxError(f"Video codec '{codec}' cannot be copied into MP4 without transcoding")

    video_labels = video_stream_labels(source)
    audio_labels = audio_track_labels(source)
    if video_labels:
        logger.info("Video streams:")
        for number, label in enumerate(video_labels, 1):
            print(f"  {number}: {label}")
    logger.info("Audio tracks:")
    for number, label in enumerate(audio_labels, 1):
        print(f"  {number}: {label}")

    selected = parse_selection(ask("Audio tracks to keep (e.g. 1,3 or 'all'): ", reader),
                               len(audio_labels))
    if len(selected) == len(audio_labels):
        logger.info("Keeping all audio tracks; nothing to do")
        return None

    video_count = count_streams(source, "v")
    if to_mp4 and video_count > 1:
        logger.warn("Only the first video stream will be included; "
                    "other video streams (e.g. cover art) will be dropped.")
        if ask("Type 'yes' to continue: ", reader) != "yes":
            logger.info("Aborted.")
            return None

    destination = remux_output_path(source, ext)
    if destination == source:
        raise RemuxError("Output path would overwrite the input file")
    if file_exists(destination):
        raise RemuxError(f"Output file already exists: {destination.name}")

    subtitles = None
    if to_mp4:
        video_indices = [0]
        codecs = subtitle_codecs(source)
        subtitles = [i for i, name in enumerate(codecs) if name in MP4_SUBTITLE_CODECS]
        if len(subtitles) < len(codecs):
            logger.warn(f"Skipped {len(codecs) - len(subtitles)} subtitle track(s) not supported "
                        f"in MP4; only mov_text is copied")
    else:
        video_indices = muxable_video_indices(source)
        if not video_indices:
            raise RemuxError("No video streams with valid dimensions (only attached pictures?)")

    cmd = build_audio_remux_cmd(source, destination, muxer, selected, video_indices, subtitles,
                                hevc_tag=to_mp4 and video_count == 1 and codec in HEVC_CODECS)
    logger.remux(f"Writing {destination.name} with audio track(s) "
                 f"{', '.join(str(i + 1) for i in selected)}")
    result = run_ffmpeg_with_progress(cmd, get_duration_sec(source), operation="Remux")
    if result.returncode != 0 or not file_exists(destination):
        remove_file(destination)
        raise RemuxError(f"Remux of {source.name} failed (exit code {result.returncode})",
                         command=cmd, output=result.stderr)
    return destination


def collect_paths(file_manager: FileManager, paths: List[str]) -> List[Path]:
    """Files are taken as given; directories are searched to the depth limit."""
    files = []
    for name in paths:
        path = Path(name)
        if path.is_file():
            if path.suffix.lower().lstrip(".") in AUDIO_REMUX_EXTENSIONS:
                files.append(path)
            else:
                logger.warn(f"Skipping (not a video file): {name}")
        elif path.is_dir():
            result = file_manager.discover_video_files(path, AUDIO_REMUX_EXTENSIONS)
            files.extend(sorted(result.files + result.marked_files))
        else:
            logger.warn(f"Not a file or directory, skipping: {name}")
    return files


def main(argv: Optional[List[str]] = None, reader: Optional[Reader] = None) -> int:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="boiler-remux-audio",
        description="Remux video files keeping only the audio tracks you choose (no transcoding)")
    parser.add_argument("paths", nargs="*", metavar="PATH",
                        help="Video files or directories (default: current directory)")
    parser.add_argument("-L", "--max-depth", type=_depth_arg, metavar="DEPTH",
                        default=config.get("max_depth", 2),
                        help="Directory depth to traverse, 0 for unlimited (default: 2)")
    parser.add_argument("--debug", action="store_true", default=config.get("debug", False))
    args = parser.parse_args(argv)

    if args.debug:
        set_debug_mode(True)

    file_manager = FileManager(max_depth=args.max_depth, debug=args.debug)
    files = collect_paths(file_manager, args.paths or [str(Path.cwd())])
    if not files:
        logger.error("No video files found in the given path(s)")
        return 1

    failed = 0
    for source in files:
        logger.info(f"--- {source} ---")
        try:
            destination = remux_audio_file(source, reader)
        except (BoilerError, OSError) as e:
            logger.error(f"  {e}, original file preserved")
            failed += 1
            continue
        if destination:
            logger.info(f"  Remuxed to: {destination}")

    if failed:
        logger.error(f"{failed} of {len(files)} file(s) failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
