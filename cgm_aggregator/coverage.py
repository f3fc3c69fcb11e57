"""Coverage of a time window by nominal-cadence samples."""
from __future__ import annotations

from typing import Iterable, Sequence

from .models import CoverageResult, GlucoseSample, TimeWindow

MINUTES_PER_SAMPLE = 5


def samples_in_window(window: TimeWindow, samples: Iterable[GlucoseSample]) -> list[GlucoseSample]:
    return [sample for sample in samples if window.contains(sample.timestamp)]


def coverage_from_count(
    sample_count: int,
    expected_minutes: int,
    minutes_per_sample: int = MINUTES_PER_SAMPLE,
) -> CoverageResult:
    """Coverage for ``sample_count`` readings against ``expected_minutes``.

    Every reading counts as ``minutes_per_sample`` regardless of the real gap
    to its neighbours.
    """

    expected = max(0, int(expected_minutes))
    covered = min(max(0, sample_count) * minutes_per_sample, expected)
    ratio = covered / max(1, expected)
    return CoverageResult(
        expected_minutes=expected,
        coverage_minutes=covered,
        coverage_ratio=min(1.0, max(0.0, ratio)),
        is_partial=covered < expected,
    )


def compute_coverage(
    window: TimeWindow,
    samples: Sequence[GlucoseSample],
    *,
    minutes_per_sample: int = MINUTES_PER_SAMPLE,
) -> CoverageResult:
    """Coverage of ``window`` by the samples that fall inside it."""

    inside = samples_in_window(window, samples)
    return coverage_from_count(len(inside), window.expected_minutes, minutes_per_sample)
