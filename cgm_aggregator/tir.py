"""Time-in-range classification and reconciliation against coverage."""
from __future__ import annotations

from typing import Final, Iterable

from .config import TIRThresholds
from .coverage import MINUTES_PER_SAMPLE
from .models import CoverageResult, GlucoseSample, GlycemicBand, TIRBucketMinutes

# Overflow is removed from the outer bands inward; very_low is eroded last.
TRIM_ORDER: Final[tuple[GlycemicBand, ...]] = (
    GlycemicBand.VERY_HIGH,
    GlycemicBand.HIGH,
    GlycemicBand.IN_RANGE,
    GlycemicBand.LOW,
    GlycemicBand.VERY_LOW,
)

_DEFAULT_THRESHOLDS: Final[TIRThresholds] = TIRThresholds()


def classify_value(value_mgdl: float, thresholds: TIRThresholds = _DEFAULT_THRESHOLDS) -> GlycemicBand:
    if value_mgdl < thresholds.very_low:
        return GlycemicBand.VERY_LOW
    if value_mgdl < thresholds.low:
        return GlycemicBand.LOW
    if value_mgdl <= thresholds.high:
        return GlycemicBand.IN_RANGE
    if value_mgdl <= thresholds.very_high:
        return GlycemicBand.HIGH
    return GlycemicBand.VERY_HIGH


def accumulate(
    samples: Iterable[GlucoseSample],
    thresholds: TIRThresholds = _DEFAULT_THRESHOLDS,
    minutes_per_sample: int = MINUTES_PER_SAMPLE,
) -> TIRBucketMinutes:
    """Uncapped per-band minutes, ``minutes_per_sample`` per reading."""

    minutes = {band: 0 for band in GlycemicBand}
    for sample in samples:
        minutes[classify_value(sample.value_mgdl, thresholds)] += minutes_per_sample
    return TIRBucketMinutes.from_bands(minutes)


def reconcile(buckets: TIRBucketMinutes, coverage_minutes: int) -> TIRBucketMinutes:
    """Trim buckets so their sum does not exceed ``coverage_minutes``.

    This is deliberately not proportional: overflow is taken from
    ``TRIM_ORDER`` one band at a time.
    """

    overflow = buckets.total - max(0, coverage_minutes)
    if overflow <= 0:
        return buckets

    minutes = {band: max(0, buckets.minutes(band)) for band in GlycemicBand}
    for band in TRIM_ORDER:
        take = min(overflow, minutes[band])
        minutes[band] -= take
        overflow -= take
        if overflow == 0:
            break
    return TIRBucketMinutes.from_bands(minutes)


def classify(
    samples: Iterable[GlucoseSample],
    coverage: CoverageResult,
    thresholds: TIRThresholds = _DEFAULT_THRESHOLDS,
    minutes_per_sample: int = MINUTES_PER_SAMPLE,
) -> TIRBucketMinutes:
    """Bucket the (already window-filtered) samples and reconcile to coverage."""

    return reconcile(accumulate(samples, thresholds, minutes_per_sample), coverage.coverage_minutes)
