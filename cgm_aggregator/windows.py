"""Named-window aggregation: today so far, rolling last 24h, calendar days."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Sequence

from .config import AggregationSettings
from .coverage import compute_coverage, samples_in_window
from .models import (
    GlucoseSample,
    GlucoseStatistics,
    TIRBucketMinutes,
    TimeWindow,
    WindowKind,
    WindowSnapshot,
)
from .sample_store import day_start, local_midnight
from .stats import compute_statistics
from .tir import classify

ROLLING_DURATION = timedelta(hours=24)


def today_window(now: datetime, settings: AggregationSettings) -> TimeWindow:
    """Local midnight to wall-clock ``now``, both inclusive, as UTC instants."""

    return TimeWindow(
        kind=WindowKind.TODAY_SO_FAR,
        start=local_midnight(now, settings.tz).astimezone(timezone.utc),
        end=now.astimezone(timezone.utc),
    )


def rolling_window(samples: Sequence[GlucoseSample], now: datetime) -> TimeWindow:
    """24h window ending at the latest sample in the buffer.

    Sensor data can reach the platform hours late; anchoring to the newest
    reading keeps the window populated during that delay. With no samples
    at all the window falls back to ending at ``now``.
    """

    # UTC so that the 24h span is real elapsed time across DST changes.
    latest = max((s.timestamp.astimezone(timezone.utc) for s in samples), default=now)
    end = latest.astimezone(timezone.utc)
    return TimeWindow(kind=WindowKind.ROLLING, start=end - ROLLING_DURATION, end=end)


def calendar_day_window(service_date: date, settings: AggregationSettings) -> TimeWindow:
    tz = settings.tz
    start = day_start(service_date, tz).astimezone(timezone.utc)
    end = day_start(service_date + timedelta(days=1), tz).astimezone(timezone.utc)
    return TimeWindow(kind=WindowKind.CALENDAR_DAY, start=start, end=end, closed_end=False)


def aggregate_window(
    window: TimeWindow,
    samples: Sequence[GlucoseSample],
    settings: AggregationSettings,
) -> WindowSnapshot:
    """Coverage, TIR buckets and statistics for one window, as one snapshot."""

    inside = samples_in_window(window, samples)
    coverage = compute_coverage(window, inside, minutes_per_sample=settings.minutes_per_sample)

    if coverage.expected_minutes == 0:
        # Degenerate window (e.g. the first minute after midnight): no data.
        return WindowSnapshot(
            window=window,
            coverage=coverage,
            tir=TIRBucketMinutes(),
            statistics=GlucoseStatistics(),
            sample_count=0,
        )

    tir = classify(inside, coverage, settings.thresholds, settings.minutes_per_sample)
    return WindowSnapshot(
        window=window,
        coverage=coverage,
        tir=tir,
        statistics=compute_statistics(inside),
        sample_count=len(inside),
    )


class WindowAggregator:
    """Builds window snapshots from a sample buffer."""

    def __init__(self, settings: AggregationSettings | None = None) -> None:
        self._settings = settings or AggregationSettings()

    @property
    def settings(self) -> AggregationSettings:
        return self._settings

    def today(self, samples: Sequence[GlucoseSample], now: datetime) -> WindowSnapshot:
        return aggregate_window(today_window(now, self._settings), samples, self._settings)

    def last_24h(self, samples: Sequence[GlucoseSample], now: datetime) -> WindowSnapshot:
        return aggregate_window(rolling_window(samples, now), samples, self._settings)

    def calendar_day(self, samples: Sequence[GlucoseSample], service_date: date) -> WindowSnapshot:
        return aggregate_window(calendar_day_window(service_date, self._settings), samples, self._settings)
