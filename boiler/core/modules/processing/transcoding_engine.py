"""
Transcoding engine module for boiler.

This module handles the ffmpeg side of the pipeline:
- Constant-quality HEVC command building
- Sample and full-file encodes into temporary files
- Progress tracking for long encodes
- Stream-copy remux into MP4
"""

import subprocess
import time
from pathlib import Path
from typing import List, Optional

from ....config import DEFAULT_ENCODER
from ....utils.logging import get_logger, create_progress_bar
from ..analysis.media_utils import (
    get_video_codec, is_codec_mp4_compatible, measure_bitrate, probe_duration, probe_resolution
)
from ..errors import EncodeFailure, ProbeError, RemuxError
from ..system.system_utils import TEMP_FILES, file_exists, remove_file, run_command

logger = get_logger("transcoding_engine")

HEVC_CODECS = {'hevc', 'h265'}


def sample_path(source: Path, start: float) -> Path:
    return source.with_name(f"{source.stem}_sample_{int(start)}.mp4")


def pass_path(source: Path, pass_number: int) -> Path:
    return source.with_name(f"{source.stem}.temp_transcode.pass{pass_number}.mp4")


def build_encode_cmd(infile: Path, outfile: Path, quality: int, encoder: str = DEFAULT_ENCODER,
                     start: Optional[float] = None, duration: Optional[float] = None) -> List[str]:
    """Build a constant-quality encode command; ``start``/``duration`` cut a sample."""
    cmd = ["ffmpeg", "-hide_banner", "-y", "-loglevel", "error"]
    if start is not None:
        cmd += ["-ss", f"{start:g}"]
    cmd += ["-i", str(infile)]
    if duration is not None:
        cmd += ["-t", f"{duration:g}"]
    cmd += [
        "-c:v", encoder,
        "-q:v", str(quality),
        "-tag:v", "hvc1",
        "-c:a", "copy",
        "-movflags", "+faststart",
        "-f", "mp4",
        str(outfile),
    ]
    return cmd


def build_remux_cmd(infile: Path, outfile: Path, codec: Optional[str]) -> List[str]:
    cmd = ["ffmpeg", "-hide_banner", "-y", "-loglevel", "error",
           "-i", str(infile), "-c:v", "copy", "-c:a", "copy", "-movflags", "+faststart"]
    if codec and codec.lower() in HEVC_CODECS:
        cmd += ["-tag:v", "hvc1"]
    cmd += ["-f", "mp4", str(outfile)]
    return cmd


def run_ffmpeg_with_progress(cmd: List[str], duration: Optional[float] = None,
                             operation: str = "Encoding") -> subprocess.CompletedProcess:
    """Run an ffmpeg command, rendering a progress bar when the duration is known."""
    if not duration or duration <= 10:
        return run_command(cmd, timeout=None)

    progress_cmd = cmd[:1] + ["-progress", "pipe:1", "-nostats"] + cmd[1:]
    logger.cmd(" ".join(progress_cmd))

    with create_progress_bar(total=100, desc=f"[{operation}]", unit="%", position=0) as pbar:
        process = subprocess.Popen(progress_cmd, stdout=subprocess.PIPE,
                                   stderr=subprocess.PIPE, text=True, bufsize=1)
        start_time = time.time()

        for line in process.stdout:
            if not line.startswith("out_time_ms="):
                continue
            try:
                current_s = int(line.split("=", 1)[1].strip()) / 1_000_000.0
            except ValueError:
                continue
            pbar.n = min(int(current_s / duration * 100), 100)
            elapsed = time.time() - start_time
            if current_s > 0 and elapsed > 0:
                speed = current_s / elapsed
                eta = (duration - current_s) / speed
                pbar.set_description(f"[{operation}] (Speed: {speed:.1f}x, ETA: {eta:.0f}s)")
            pbar.refresh()

        stderr = process.stderr.read() if process.stderr else ""
        returncode = process.wait()
        if returncode == 0:
            pbar.n = 100
            pbar.refresh()

    return subprocess.CompletedProcess(progress_cmd, returncode, "", stderr)


class FFmpegBackend:
    """Encoder and bitrate gateway used by the quality search and refinement passes."""

    def __init__(self, encoder: str = DEFAULT_ENCODER):
        self.encoder = encoder

    def encode_sample(self, source: Path, start: float, duration: float, quality: int) -> Path:
        outfile = sample_path(source, start)
        self._claim(outfile)
        cmd = build_encode_cmd(source, outfile, quality, self.encoder, start=start, duration=duration)
        result = run_command(cmd, timeout=None)
        self._check(result, cmd, outfile, f"sample at {start:.1f}s")
        return outfile

    def encode_full(self, source: Path, quality: int, pass_number: int = 1,
                    duration: Optional[float] = None) -> Path:
        outfile = pass_path(source, pass_number)
        self._claim(outfile)
        cmd = build_encode_cmd(source, outfile, quality, self.encoder)
        result = run_ffmpeg_with_progress(cmd, duration, operation=f"Pass {pass_number}")
        self._check(result, cmd, outfile, f"pass {pass_number}")
        return outfile

    def probe_duration(self, path: Path) -> float:
        return probe_duration(path)

    def probe_resolution(self, path: Path) -> int:
        return probe_resolution(path)

    def measure_bitrate(self, path: Path, duration: Optional[float]) -> Optional[int]:
        return measure_bitrate(path, duration)

    @staticmethod
    def _claim(outfile: Path):
        """Register a temp output; a file this run did not create is never overwritten."""
        if outfile not in TEMP_FILES and file_exists(outfile):
            raise EncodeFailure(f"Refusing to overwrite existing file {outfile.name}")
        TEMP_FILES.add(outfile)

    @staticmethod
    def _check(result: subprocess.CompletedProcess, cmd: List[str], outfile: Path, what: str):
        if result.returncode != 0 or not file_exists(outfile):
            remove_file(outfile)
            raise EncodeFailure(f"ffmpeg failed to encode {what} (exit code {result.returncode})",
                                command=cmd, output=result.stderr)


def remux_to_mp4(infile: Path, outfile: Path) -> Path:
    """Stream-copy ``infile`` into an MP4 container; partial output is removed on failure."""
    codec = get_video_codec(infile)
    if not codec:
        raise ProbeError(f"Could not detect video codec for {infile.name}")
    if not is_codec_mp4_compatible(codec):
        raise RemuxError(f"Video codec '{codec}' cannot be copied into MP4 without transcoding")

    cmd = build_remux_cmd(infile, outfile, codec)
    result = run_command(cmd, timeout=None)
    if result.returncode != 0 or not file_exists(outfile):
        remove_file(outfile)
        raise RemuxError(f"Remux of {infile.name} failed (exit code {result.returncode})",
                         command=cmd, output=result.stderr)
    return outfile
