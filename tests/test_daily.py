from datetime import date, datetime, timezone

import pandas as pd

from cgm_aggregator.cache import DailyHistoryCache
from cgm_aggregator.config import AggregationSettings, TIRThresholds
from cgm_aggregator.daily import build_daily_history, group_by_local_date, past_service_dates
from cgm_aggregator.models import GlucoseSample

UTC = timezone.utc
TODAY = date(2024, 3, 10)


def _samples(start: str, count: int, value: float = 100.0) -> list[GlucoseSample]:
    timestamps = pd.date_range(start, periods=count, freq="5min", tz="UTC")
    return [GlucoseSample(ts.to_pydatetime(), value) for ts in timestamps]


def test_past_service_dates_exclude_today():
    assert past_service_dates(TODAY, 3) == [date(2024, 3, 7), date(2024, 3, 8), date(2024, 3, 9)]
    assert past_service_dates(TODAY, 0) == []


def test_build_daily_history_covers_every_past_day():
    samples = (
        _samples("2024-03-07 08:00", 12, value=300.0)
        + _samples("2024-03-09 00:00", 288)
        + _samples("2024-03-10 00:00", 24)
    )

    history = build_daily_history(samples, TODAY, AggregationSettings(), days=3)

    assert [entry.service_date for entry in history] == [date(2024, 3, 7), date(2024, 3, 8), date(2024, 3, 9)]
    first, missing, full = history
    assert first.coverage_minutes == 60
    assert first.tir.very_high == 60
    assert first.sample_count == 12
    assert missing.coverage_minutes == 0
    assert missing.expected_minutes == 1440
    assert missing.statistics.mean_mgdl is None
    assert full.coverage_minutes == 1440
    assert full.tir.in_range == 1440
    assert full.statistics.sd_mgdl == 0.0


def test_build_daily_history_restricted_to_missing_dates():
    samples = _samples("2024-03-09 00:00", 288)
    history = build_daily_history(samples, TODAY, AggregationSettings(), days=5, only_dates=[date(2024, 3, 9)])
    assert [entry.service_date for entry in history] == [date(2024, 3, 9)]
    assert build_daily_history(samples, TODAY, days=5, only_dates=[]) == []


def test_group_by_local_date_shifts_across_midnight():
    settings = AggregationSettings(local_timezone="America/New_York")
    samples = [
        GlucoseSample(datetime(2024, 3, 9, 3, 0, tzinfo=UTC), 100.0),  # 22:00 on the 8th locally
        GlucoseSample(datetime(2024, 3, 9, 6, 0, tzinfo=UTC), 110.0),
    ]
    grouped = group_by_local_date(samples, settings)
    assert sorted(grouped) == [date(2024, 3, 8), date(2024, 3, 9)]
    assert grouped[date(2024, 3, 8)][0].value_mgdl == 100.0


def test_cache_invalidates_on_threshold_change():
    cache = DailyHistoryCache()
    assert cache.ensure_thresholds(TIRThresholds()) is True
    cache.update(build_daily_history(_samples("2024-03-09 00:00", 288), TODAY, days=2))
    assert len(cache) == 2

    assert cache.ensure_thresholds(TIRThresholds()) is False
    assert len(cache) == 2

    assert cache.ensure_thresholds(TIRThresholds(high=160)) is True
    assert len(cache) == 0


def test_cache_prune_and_missing():
    cache = DailyHistoryCache()
    cache.update(build_daily_history([], TODAY, days=4))
    assert cache.missing([date(2024, 3, 9), date(2024, 3, 10)]) == [date(2024, 3, 10)]

    cache.prune({date(2024, 3, 8), date(2024, 3, 9)})

    assert [entry.service_date for entry in cache.values()] == [date(2024, 3, 8), date(2024, 3, 9)]
    assert date(2024, 3, 6) not in cache
    assert cache.get(date(2024, 3, 9)).expected_minutes == 1440
