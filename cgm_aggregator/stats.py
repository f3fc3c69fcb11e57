"""Descriptive glucose statistics."""
from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

import numpy as np

from .models import GlucoseSample, GlucoseStatistics

GMI_INTERCEPT = 3.31
GMI_SLOPE = 0.02392


def cv_percent(mean_mgdl: Optional[float], sd_mgdl: Optional[float]) -> Optional[float]:
    if mean_mgdl is None or sd_mgdl is None:
        return None
    if mean_mgdl <= 0:
        return None
    return max(0.0, (sd_mgdl / mean_mgdl) * 100.0)


def gmi_percent(mean_mgdl: Optional[float]) -> Optional[float]:
    """Glucose management indicator (estimated A1c, %) from mean mg/dL."""

    if mean_mgdl is None or mean_mgdl <= 0:
        return None
    return GMI_INTERCEPT + GMI_SLOPE * mean_mgdl


def compute_statistics(samples: Sequence[GlucoseSample]) -> GlucoseStatistics:
    """Mean, population SD (divisor N) and CV% over ``samples``."""

    if not samples:
        return GlucoseStatistics()

    values = np.fromiter((s.value_mgdl for s in samples), dtype=float, count=len(samples))
    mean = float(np.mean(values))
    sd = float(np.std(values, ddof=0)) if len(values) >= 2 else None
    return GlucoseStatistics(mean_mgdl=mean, sd_mgdl=sd, cv_percent=cv_percent(mean, sd))


def pooled_statistics(parts: Iterable[tuple[int, GlucoseStatistics]]) -> GlucoseStatistics:
    """Combine ``(count, statistics)`` parts into statistics over all samples.

    Uses the population identity ``var = E[x^2] - mean^2`` so that per-day
    results can be merged without the raw readings. A part with one reading
    has no SD of its own and contributes zero spread.
    """

    total = 0
    weighted_sum = 0.0
    weighted_sq = 0.0
    for count, stats in parts:
        if count <= 0 or stats.mean_mgdl is None:
            continue
        sd = stats.sd_mgdl or 0.0
        total += count
        weighted_sum += count * stats.mean_mgdl
        weighted_sq += count * (sd * sd + stats.mean_mgdl * stats.mean_mgdl)

    if total == 0:
        return GlucoseStatistics()

    mean = weighted_sum / total
    if total < 2:
        return GlucoseStatistics(mean_mgdl=mean)
    variance = max(0.0, weighted_sq / total - mean * mean)
    sd = math.sqrt(variance)
    return GlucoseStatistics(mean_mgdl=mean, sd_mgdl=sd, cv_percent=cv_percent(mean, sd))
