"""
Full-file refinement passes.

Samples only estimate the full-file bitrate, so the quality found by the
sample search is verified on the whole video:

1. Pass 1 encodes at the search result. Accepted if within tolerance.
2. Pass 2 applies one proportional step to pass 1's result. Accepted if within tolerance.
3. Pass 3 interpolates linearly between the two observations and is accepted
   unconditionally.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from ....utils.logging import get_logger
from ..analysis.media_utils import bps_to_mbps
from ..errors import MeasurementUnavailable
from .bitrate_targets import within_target
from .quality_search import adjust_quality, clamp_quality, round_half_away

logger = get_logger("multi_pass")

MAX_PASSES = 3
# Pass bitrates closer than this fraction of target give no usable slope
DEGENERATE_FRACTION = 0.01


def interpolate_quality(q1: int, b1: float, q2: int, b2: float, target_bps: float) -> int:
    """Quality at which the line through (q1, b1) and (q2, b2) reaches the target bitrate."""
    if abs(b1 - b2) < DEGENERATE_FRACTION * target_bps:
        return clamp_quality(round_half_away((q1 + q2) / 2))
    return clamp_quality(round_half_away(q2 + (q1 - q2) * (target_bps - b2) / (b1 - b2)))


@dataclass(frozen=True)
class PassRecord:
    number: int
    quality: int
    bitrate: int
    output: Path
    within_tolerance: bool


@dataclass
class RefinementResult:
    passes: List[PassRecord] = field(default_factory=list)

    @property
    def final(self) -> PassRecord:
        return self.passes[-1]


class MultiPassRefiner:
    """Runs up to three full-file encodes to land the actual bitrate on target."""

    def __init__(self, backend, source: Path, duration: float, target_bps: int):
        self.backend = backend
        self.source = source
        self.duration = duration
        self.target_bps = target_bps
        self.outputs: List[Path] = []

    def _encode_pass(self, number: int, quality: int) -> PassRecord:
        logger.passes(f"Pass {number}/{MAX_PASSES}: full encode at quality {quality}")
        output = self.backend.encode_full(self.source, quality, pass_number=number, duration=self.duration)
        self.outputs.append(output)
        bitrate = self.backend.measure_bitrate(output, self.duration)
        if bitrate is None:
            raise MeasurementUnavailable(
                f"Could not determine bitrate of pass {number} output for {self.source.name}", path=output)
        within = within_target(bitrate, self.target_bps)
        logger.passes(f"Pass {number}: {bps_to_mbps(bitrate)} Mbps "
                      f"(target {bps_to_mbps(self.target_bps)} Mbps, "
                      f"{'within' if within else 'outside'} tolerance)")
        return PassRecord(number, quality, bitrate, output, within)

    def refine(self, start_quality: int) -> RefinementResult:
        result = RefinementResult()

        first = self._encode_pass(1, start_quality)
        result.passes.append(first)
        if first.within_tolerance:
            return result

        q2 = adjust_quality(first.quality, first.bitrate, self.target_bps)
        second = self._encode_pass(2, q2)
        result.passes.append(second)
        if second.within_tolerance:
            return result

        q3 = interpolate_quality(first.quality, first.bitrate, second.quality, second.bitrate,
                                 self.target_bps)
        third = self._encode_pass(3, q3)
        result.passes.append(third)
        if not third.within_tolerance:
            logger.warn(f"Accepting pass 3 outside tolerance ({bps_to_mbps(third.bitrate)} Mbps)")
        return result
