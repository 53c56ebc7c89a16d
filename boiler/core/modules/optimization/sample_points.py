"""
Sample point selection for the quality search.

Short videos are measured whole. Longer ones are probed with fixed 60 second
excerpts: two for 2-3 minute videos (start and end), three beyond that at
10%, 50% and 90% of the timeline, the last one pulled back so it never runs
past the end of the file.
"""

from dataclasses import dataclass
from typing import List

SAMPLE_DURATION = 60.0


@dataclass(frozen=True)
class SampleSpec:
    start: float
    duration: float


def calculate_sample_points(duration: float) -> List[SampleSpec]:
    if duration < 2 * SAMPLE_DURATION:
        return [SampleSpec(0.0, float(duration))]

    max_start = duration - SAMPLE_DURATION
    if duration < 3 * SAMPLE_DURATION:
        return [SampleSpec(0.0, SAMPLE_DURATION), SampleSpec(max_start, SAMPLE_DURATION)]

    starts = (duration * 0.1, duration * 0.5, min(duration * 0.9, max_start))
    return [SampleSpec(start, SAMPLE_DURATION) for start in starts]
