"""Hybrid multi-day summaries: finalized daily history plus today so far."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Sequence

from .models import MINUTES_PER_DAY, DailyAggregate, PeriodSummary, TIRBucketMinutes, WindowSnapshot
from .stats import pooled_statistics


def _non_negative(buckets: TIRBucketMinutes) -> TIRBucketMinutes:
    return TIRBucketMinutes(
        very_low=max(0, buckets.very_low),
        low=max(0, buckets.low),
        in_range=max(0, buckets.in_range),
        high=max(0, buckets.high),
        very_high=max(0, buckets.very_high),
    )


def select_history(daily_history: Iterable[DailyAggregate], today: date, past_days: int) -> list[DailyAggregate]:
    """Entries within ``[today - past_days, today)``; today itself is excluded."""

    start = today - timedelta(days=past_days)
    selected = [entry for entry in daily_history if start <= entry.service_date < today]
    return sorted(selected, key=lambda entry: entry.service_date)


def build_period(
    days: int,
    daily_history: Sequence[DailyAggregate],
    today_summary: WindowSnapshot,
    today: date,
) -> PeriodSummary:
    """Combine ``days - 1`` finalized days with the live today-so-far window.

    Today is taken only from ``today_summary``; the rolling 24h window must
    not be used here because it overlaps yesterday's finalized entry.
    """

    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")

    past_days = days - 1
    history = select_history(daily_history, today, past_days)

    tir = TIRBucketMinutes()
    coverage = 0
    expected = 0
    for entry in history:
        tir = tir + _non_negative(entry.tir)
        coverage += max(0, entry.coverage_minutes)
        expected += max(0, entry.expected_minutes)

    # Missing history days count as uncovered, not as a shorter period.
    expected = max(expected, past_days * MINUTES_PER_DAY)

    tir = tir + _non_negative(today_summary.tir)
    coverage += max(0, today_summary.coverage.coverage_minutes)
    expected += max(0, today_summary.coverage.expected_minutes)

    parts = [(entry.sample_count, entry.statistics) for entry in history]
    parts.append((today_summary.sample_count, today_summary.statistics))

    return PeriodSummary(
        days=days,
        tir=tir,
        coverage_minutes=coverage,
        expected_minutes=expected,
        coverage_ratio=coverage / expected if expected > 0 else 0.0,
        is_partial=coverage < expected,
        statistics=pooled_statistics(parts),
        history_days_used=len(history),
    )


class HybridPeriodAggregator:
    """Builds the configured set of period summaries."""

    def __init__(self, period_days: Sequence[int] = (7, 14, 30, 90)) -> None:
        self._period_days = tuple(period_days)

    @property
    def period_days(self) -> tuple[int, ...]:
        return self._period_days

    def build_all(
        self,
        daily_history: Sequence[DailyAggregate],
        today_summary: WindowSnapshot,
        today: date,
    ) -> dict[int, PeriodSummary]:
        return {days: build_period(days, daily_history, today_summary, today) for days in self._period_days}
