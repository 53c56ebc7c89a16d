"""
Target bitrate selection and the ±5% tolerance gate.

A target comes from the resolution table unless the caller supplies one
explicitly. The same tolerance band decides convergence of the sample search,
acceptance of each full-file pass and the pre-check that skips encoding.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

# Vertical resolution -> target bitrate (bps), highest tier first
RESOLUTION_TARGETS = (
    (2160, 11_000_000),
    (1080, 8_000_000),
    (720, 5_000_000),
    (480, 2_500_000),
)
DEFAULT_TARGET_BPS = 2_500_000

TOLERANCE = 0.05


@dataclass(frozen=True)
class VideoAsset:
    """Probed facts about one source file."""
    path: object
    duration: float
    height: int
    bitrate: int


@dataclass(frozen=True)
class TargetProfile:
    bitrate: int
    source: str = "resolution"

    def __post_init__(self):
        if self.bitrate <= 0:
            raise ValueError(f"Target bitrate must be positive, got {self.bitrate}")

    @property
    def lower(self) -> float:
        return self.bitrate * (1 - TOLERANCE)

    @property
    def upper(self) -> float:
        return self.bitrate * (1 + TOLERANCE)


def target_for_resolution(height: int) -> int:
    """Target bitrate for a vertical resolution; each tier covers everything at or above it."""
    for min_height, bitrate in RESOLUTION_TARGETS:
        if height >= min_height:
            return bitrate
    return DEFAULT_TARGET_BPS


def resolve_target(height: int, explicit_bps: Optional[int] = None) -> TargetProfile:
    if explicit_bps is not None:
        return TargetProfile(int(explicit_bps), source="explicit")
    return TargetProfile(target_for_resolution(height))


def tolerance_bounds(target_bps: float) -> Tuple[float, float]:
    return target_bps * (1 - TOLERANCE), target_bps * (1 + TOLERANCE)


def is_within_tolerance(value: float, lower: float, upper: float) -> bool:
    return lower <= value <= upper


def within_target(bitrate: float, target_bps: float) -> bool:
    lower, upper = tolerance_bounds(target_bps)
    return is_within_tolerance(bitrate, lower, upper)


def should_skip_encoding(source_bitrate: float, target_bps: float) -> bool:
    """Pre-check: a source already inside the band, or below the target, is kept as-is."""
    return within_target(source_bitrate, target_bps) or source_bitrate < target_bps
