"""Daily batch computation of finalized calendar-day aggregates."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Sequence

from .config import AggregationSettings
from .models import DailyAggregate, GlucoseSample
from .sample_store import deduplicate, samples_to_frame
from .windows import WindowAggregator


def past_service_dates(today: date, days: int) -> list[date]:
    """The ``days`` calendar dates strictly before ``today``, oldest first."""

    return [today - timedelta(days=offset) for offset in range(days, 0, -1)]


def group_by_local_date(
    samples: Sequence[GlucoseSample],
    settings: AggregationSettings,
) -> dict[date, list[GlucoseSample]]:
    """Bucket samples by the local calendar date of their timestamp."""

    if not samples:
        return {}
    frame = samples_to_frame(samples)
    frame["service_date"] = frame["timestamp"].dt.tz_convert(settings.tz).dt.date
    grouped: dict[date, list[GlucoseSample]] = {}
    for service_date, group in frame.groupby("service_date", sort=True):
        grouped[service_date] = [samples[idx] for idx in group.index]
    return grouped


def build_daily_aggregate(
    service_date: date,
    samples: Sequence[GlucoseSample],
    aggregator: WindowAggregator,
) -> DailyAggregate:
    snapshot = aggregator.calendar_day(samples, service_date)
    return DailyAggregate(
        service_date=service_date,
        coverage=snapshot.coverage,
        tir=snapshot.tir,
        statistics=snapshot.statistics,
        sample_count=snapshot.sample_count,
    )


def build_daily_history(
    samples: Iterable[GlucoseSample],
    today: date,
    settings: AggregationSettings | None = None,
    *,
    days: int | None = None,
    only_dates: Iterable[date] | None = None,
) -> list[DailyAggregate]:
    """Aggregate each complete local day before ``today``.

    Days without readings still produce an entry (zero coverage against
    1440 expected minutes). ``only_dates`` restricts the computation to a
    subset, e.g. the days missing from a cache.
    """

    settings = settings or AggregationSettings()
    span = settings.history_days if days is None else days
    wanted = past_service_dates(today, span)
    if only_dates is not None:
        allowed = set(only_dates)
        wanted = [d for d in wanted if d in allowed]
    if not wanted:
        return []

    ordered = list(deduplicate(samples))
    by_day = group_by_local_date(ordered, settings)
    aggregator = WindowAggregator(settings)
    return [build_daily_aggregate(d, by_day.get(d, []), aggregator) for d in wanted]
