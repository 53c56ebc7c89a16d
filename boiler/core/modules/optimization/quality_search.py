"""
Quality search over short samples.

The encoder's constant-quality knob (0-100) relates to output bitrate in a
monotonic but non-linear way. This module finds a quality value whose sample
bitrate lands inside the tolerance band around the target:

- ``adjust_quality``: proportional step, 1..10 units scaled by how far the
  measured bitrate is from target. An exact hit still steps down by one.
- ``OscillationDetector``: stops the loop when the controller bounces between
  two or three quality values and picks the member closest to target.
- ``SampleSearchLoop``: encodes the sample points at the current quality,
  averages their bitrates and iterates until converged, oscillating or pinned
  at a bound of the quality range.

All external work (encoding, measuring) goes through a backend object; see
``boiler.core.modules.processing.transcoding_engine.FFmpegBackend``.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set, Tuple

from ....utils.logging import get_logger
from ..analysis.media_utils import bps_to_mbps
from ..errors import MeasurementUnavailable
from .bitrate_targets import within_target
from .sample_points import SampleSpec, calculate_sample_points

logger = get_logger("quality_search")

MIN_QUALITY = 0
MAX_QUALITY = 100
INITIAL_QUALITY = 60
MIN_STEP = 1
MAX_STEP = 10


def round_half_away(value: float) -> int:
    """Round to nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def clamp_quality(quality: int) -> int:
    return max(MIN_QUALITY, min(MAX_QUALITY, quality))


def squared_distance(a: float, b: float) -> float:
    return (a - b) ** 2


def adjust_quality(quality: int, measured_bps: float, target_bps: float) -> int:
    """Next quality value from the current one and the measured/target bitrate ratio."""
    if target_bps <= 0:
        # No meaningful ratio; step down as far as allowed
        return clamp_quality(quality - MAX_STEP)

    ratio = measured_bps / target_bps
    if ratio < 1:
        distance = 1 - ratio
        adjustment = MIN_STEP + (MAX_STEP - MIN_STEP) * min(distance, 1)
        return clamp_quality(quality + round_half_away(adjustment))

    distance = min(ratio - 1, 1)
    adjustment = MIN_STEP + (MAX_STEP - MIN_STEP) * distance
    return clamp_quality(quality - round_half_away(adjustment))


@dataclass(frozen=True)
class Evaluation:
    quality: int
    bitrate: int


class EvaluationHistory:
    """Append-only record of (quality, bitrate) pairs for one search."""

    def __init__(self):
        self._entries: List[Evaluation] = []

    def append(self, quality: int, bitrate: int):
        self._entries.append(Evaluation(quality, bitrate))

    def qualities(self) -> List[int]:
        return [e.quality for e in self._entries]

    def __len__(self):
        return len(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def __iter__(self):
        return iter(self._entries)


class OscillationDetector:
    """
    Detects 2- and 3-cycles in the quality sequence.

    Called with the history and the quality the controller proposes next. A
    2-cycle is a proposal equal to the quality evaluated two steps earlier; a
    3-cycle is a proposal equal to the one three steps earlier with the three
    most recent qualities all distinct, so the same triple would be evaluated
    again. The cycle member whose bitrate sits closest to target wins; ties
    go to the lower bitrate.
    """

    def __init__(self, target_bps: float):
        self.target_bps = target_bps

    def check(self, history: EvaluationHistory, next_quality: int) -> Optional[int]:
        members = self._cycle_members(history, next_quality)
        if not members:
            return None
        best = min(members, key=lambda e: (squared_distance(e.bitrate, self.target_bps), e.bitrate))
        return best.quality

    def _cycle_members(self, history: EvaluationHistory, next_quality: int) -> List[Evaluation]:
        if len(history) >= 2 and history[-2].quality == next_quality:
            return self._distinct([history[-2], history[-1]])
        if len(history) >= 3 and history[-3].quality == next_quality:
            recent = [history[-3], history[-2], history[-1]]
            if len({e.quality for e in recent}) == 3:
                return recent
        return []

    @staticmethod
    def _distinct(entries: List[Evaluation]) -> List[Evaluation]:
        seen = {}
        for entry in entries:
            seen.setdefault(entry.quality, entry)
        return list(seen.values())


class SearchState(Enum):
    SEARCHING = "searching"
    CONVERGED = "converged"
    OSCILLATED = "oscillated"
    BOUND_REACHED = "bound_reached"


def search_step(quality: int, measured_bps: int, target_bps: float,
                history: EvaluationHistory,
                detector: OscillationDetector) -> Tuple[SearchState, int]:
    """
    One transition of the search state machine.

    Returns the new state and the quality to use next (or the terminal quality
    when the state is no longer SEARCHING).
    """
    if within_target(measured_bps, target_bps):
        return SearchState.CONVERGED, quality

    next_quality = adjust_quality(quality, measured_bps, target_bps)
    history.append(quality, measured_bps)

    chosen = detector.check(history, next_quality)
    if chosen is not None:
        return SearchState.OSCILLATED, chosen

    if next_quality == quality:
        # Pinned at 0 or 100 and the controller wants to go further
        return SearchState.BOUND_REACHED, quality

    return SearchState.SEARCHING, next_quality


@dataclass
class SearchResult:
    quality: int
    state: SearchState
    iterations: int
    history: EvaluationHistory = field(default_factory=EvaluationHistory)
    last_bitrate: Optional[int] = None


class SampleSearchLoop:
    """Drives sample encodes until the search state machine leaves SEARCHING."""

    def __init__(self, backend, source: Path, duration: float, target_bps: int,
                 initial_quality: int = INITIAL_QUALITY):
        self.backend = backend
        self.source = source
        self.duration = duration
        self.target_bps = target_bps
        self.initial_quality = clamp_quality(initial_quality)
        self.samples: List[SampleSpec] = calculate_sample_points(duration)
        self.sample_files: Set[Path] = set()

    def measure_samples(self, quality: int) -> int:
        """Encode every sample point at ``quality`` and return the mean bitrate."""
        measured = []
        for index, spec in enumerate(self.samples, start=1):
            sample_file = self.backend.encode_sample(self.source, spec.start, spec.duration, quality)
            self.sample_files.add(sample_file)
            bitrate = self.backend.measure_bitrate(sample_file, spec.duration)
            if bitrate is None:
                logger.warn(f"Sample {index} at {spec.start:.1f}s: bitrate unavailable")
                continue
            logger.sample(f"Sample {index} at {spec.start:.1f}s: {bps_to_mbps(bitrate)} Mbps")
            measured.append(bitrate)

        if not measured:
            raise MeasurementUnavailable(
                f"Could not determine bitrate from any sample of {self.source.name}", path=self.source)
        return sum(measured) // len(measured)

    def run(self) -> SearchResult:
        history = EvaluationHistory()
        detector = OscillationDetector(self.target_bps)
        quality = self.initial_quality
        state = SearchState.SEARCHING
        iterations = 0
        bitrate = None

        logger.search(f"Sampling {len(self.samples)} point(s), starting at quality {quality}")
        while state is SearchState.SEARCHING:
            iterations += 1
            bitrate = self.measure_samples(quality)
            logger.search(f"Iteration {iterations}: quality {quality} -> {bps_to_mbps(bitrate)} Mbps "
                          f"(target {bps_to_mbps(self.target_bps)} Mbps)")
            state, next_quality = search_step(quality, bitrate, self.target_bps, history, detector)
            if state is SearchState.SEARCHING:
                logger.search_debug(f"Adjusting quality {quality} -> {next_quality}")
            quality = next_quality

        if state is SearchState.OSCILLATED:
            logger.search(f"Oscillation detected, settling on quality {quality}")
        elif state is SearchState.BOUND_REACHED:
            logger.warn(f"Target unreachable within quality range, using bound {quality}")
        else:
            logger.search(f"Converged at quality {quality}")

        return SearchResult(quality, state, iterations, history, bitrate)
