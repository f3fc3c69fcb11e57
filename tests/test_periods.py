from datetime import date, datetime, timezone

import pandas as pd
import pytest

from cgm_aggregator.models import (
    CoverageResult,
    DailyAggregate,
    GlucoseSample,
    GlucoseStatistics,
    TIRBucketMinutes,
)
from cgm_aggregator.periods import HybridPeriodAggregator, build_period, select_history
from cgm_aggregator.windows import WindowAggregator

UTC = timezone.utc
TODAY = date(2024, 3, 10)
NOW = datetime(2024, 3, 10, 13, 0, tzinfo=UTC)


def _day(service_date: date, tir: TIRBucketMinutes, stats: GlucoseStatistics | None = None, count: int = 0) -> DailyAggregate:
    coverage = tir.total
    return DailyAggregate(
        service_date=service_date,
        coverage=CoverageResult(
            expected_minutes=1440,
            coverage_minutes=coverage,
            coverage_ratio=coverage / 1440,
            is_partial=coverage < 1440,
        ),
        tir=tir,
        statistics=stats or GlucoseStatistics(),
        sample_count=count,
    )


def _today_snapshot(count: int = 60, value: float = 100.0):
    timestamps = pd.date_range("2024-03-10 00:00", periods=count, freq="5min", tz="UTC")
    samples = [GlucoseSample(ts.to_pydatetime(), value) for ts in timestamps]
    return WindowAggregator().today(samples, NOW)


def _history() -> list[DailyAggregate]:
    days = [
        _day(date(2024, 3, 4 + i), TIRBucketMinutes(in_range=1000 + 10 * i, very_high=50))
        for i in range(6)
    ]
    days.append(_day(date(2024, 3, 3), TIRBucketMinutes(very_low=999)))
    days.append(_day(date(2024, 3, 10), TIRBucketMinutes(very_low=999)))
    return days


def test_select_history_window_excludes_today():
    selected = select_history(_history(), TODAY, 6)
    assert [entry.service_date for entry in selected] == [date(2024, 3, 4 + i) for i in range(6)]


def test_seven_day_period_combines_history_and_today():
    summary = build_period(7, _history(), _today_snapshot(), TODAY)

    assert summary.history_days_used == 6
    assert summary.tir == TIRBucketMinutes(in_range=6450, very_high=300)
    assert summary.coverage_minutes == 6750
    assert summary.expected_minutes == 9420
    assert summary.coverage_ratio == pytest.approx(6750 / 9420)
    assert summary.is_partial is True
    assert summary.tir.total == summary.coverage_minutes


def test_missing_history_days_still_count_as_expected():
    history = [_day(date(2024, 3, 9), TIRBucketMinutes(in_range=1440))]

    summary = build_period(7, history, _today_snapshot(), TODAY)

    assert summary.history_days_used == 1
    assert summary.expected_minutes == 6 * 1440 + 780
    assert summary.coverage_minutes == 1440 + 300


def test_single_day_period_is_today_only():
    today = _today_snapshot()
    summary = build_period(1, _history(), today, TODAY)

    assert summary.history_days_used == 0
    assert summary.expected_minutes == 780
    assert summary.coverage_minutes == 300
    assert summary.tir == today.tir


def test_invalid_period_length():
    with pytest.raises(ValueError):
        build_period(0, [], _today_snapshot(), TODAY)


def test_zero_expected_minutes_gives_zero_ratio():
    midnight = datetime(2024, 3, 10, 0, 0, tzinfo=UTC)
    today = WindowAggregator().today([], midnight)

    summary = build_period(1, [], today, TODAY)

    assert summary.expected_minutes == 0
    assert summary.coverage_ratio == 0.0


def test_period_statistics_are_pooled_by_sample_count():
    history = [
        _day(
            date(2024, 3, 9),
            TIRBucketMinutes(high=1440),
            GlucoseStatistics(mean_mgdl=200.0, sd_mgdl=0.0, cv_percent=0.0),
            count=288,
        )
    ]
    summary = build_period(2, history, _today_snapshot(count=96), TODAY)

    # 288 readings at 200 and 96 at 100
    assert summary.statistics.mean_mgdl == pytest.approx(175.0)
    assert summary.statistics.sd_mgdl == pytest.approx(43.30127, rel=1e-5)
    assert summary.gmi_percent == pytest.approx(3.31 + 0.02392 * 175.0)


def test_aggregator_builds_each_configured_period():
    periods = HybridPeriodAggregator((7, 14)).build_all(_history(), _today_snapshot(), TODAY)

    assert sorted(periods) == [7, 14]
    assert periods[14].expected_minutes == 13 * 1440 + 780
    # 3/3 is inside the 14-day range
    assert periods[14].tir.very_low == 999
