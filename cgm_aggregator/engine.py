"""Refresh pipeline: ingest, daily history, window and period aggregation."""
from __future__ import annotations

import itertools
import logging
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Protocol, Sequence

from .cache import DailyHistoryCache
from .config import AggregationSettings
from .daily import build_daily_history, past_service_dates
from .models import DailyAggregate, GlucoseSample, MetabolicSnapshot
from .periods import HybridPeriodAggregator
from .sample_store import SampleStore, day_start, require_aware
from .store import SnapshotStore
from .windows import WindowAggregator


class GlucoseSampleSource(Protocol):
    """Provider of raw readings for an arbitrary time range."""

    async def fetch_samples(self, start: datetime, end: datetime) -> Sequence[GlucoseSample]:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_snapshot(
    samples: Sequence[GlucoseSample],
    daily_history: Sequence[DailyAggregate],
    now: datetime,
    settings: AggregationSettings | None = None,
    *,
    sequence: int = 0,
) -> MetabolicSnapshot:
    """Derive every published summary from one sample buffer in one call.

    ``samples`` must already be deduplicated and sorted (see
    :meth:`SampleStore.ingest`). Stages run in a fixed order: today so far,
    rolling 24h, then the hybrid periods, which read today's snapshot.
    """

    require_aware(now)
    settings = settings or AggregationSettings()
    windows = WindowAggregator(settings)
    today_date = now.astimezone(settings.tz).date()

    today = windows.today(samples, now)
    last_24h = windows.last_24h(samples, now)
    periods = HybridPeriodAggregator(settings.period_days).build_all(daily_history, today, today_date)

    return MetabolicSnapshot(
        generated_at=now,
        sequence=sequence,
        sample_count=len(samples),
        today=today,
        last_24h=last_24h,
        periods=periods,
    )


class MetabolicEngine:
    """Owns the sample buffer, the daily history cache and the published snapshot.

    Intended for a single event loop. Each refresh takes a sequence number;
    a fetch that completes after a newer refresh has published is dropped.
    """

    def __init__(
        self,
        source: GlucoseSampleSource,
        settings: AggregationSettings | None = None,
        *,
        history_source: GlucoseSampleSource | None = None,
        sample_store: SampleStore | None = None,
        history_cache: DailyHistoryCache | None = None,
        snapshot_store: SnapshotStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings or AggregationSettings()
        self._source = source
        self._history_source = history_source or source
        self._samples = sample_store or SampleStore(self._settings.retained_days)
        self._history = history_cache or DailyHistoryCache()
        self._snapshots = snapshot_store or SnapshotStore()
        self._clock = clock or _utc_now
        self._sequence = itertools.count(1)
        self._published_sequence = 0

    @property
    def settings(self) -> AggregationSettings:
        return self._settings

    @property
    def sample_store(self) -> SampleStore:
        return self._samples

    @property
    def history_cache(self) -> DailyHistoryCache:
        return self._history

    @property
    def snapshots(self) -> SnapshotStore:
        return self._snapshots

    @property
    def current(self) -> MetabolicSnapshot | None:
        return self._snapshots.current

    def update_settings(self, settings: AggregationSettings) -> None:
        """Swap settings; cached history is invalidated on the next refresh if thresholds changed.

        A new ``retained_days`` rebuilds the sample buffer around the readings
        already held; the next refresh fetches the wider or narrower range.
        """

        if settings.retained_days != self._samples.retained_days:
            store = SampleStore(settings.retained_days)
            store.ingest(self._samples.samples)
            self._samples = store
        self._settings = settings

    async def refresh(self, now: datetime | None = None) -> MetabolicSnapshot | None:
        """Fetch, ingest, aggregate and publish.

        A failed fetch leaves the buffer untouched and the snapshot is
        recomputed from whatever is cached. Past days inside the buffer are
        re-aggregated from the fresh readings so late data is picked up.
        """

        now = now or self._clock()
        require_aware(now)
        sequence = next(self._sequence)

        start = self._samples.retention_start(now, self._settings.tz)
        raw: Sequence[GlucoseSample] | None
        try:
            raw = await self._source.fetch_samples(start, now)
        except Exception as exc:
            logging.warning(f"Glucose sample fetch #{sequence} failed; keeping cached samples: {exc!r}")
            raw = None

        await self._refresh_history(now)

        if sequence < self._published_sequence:
            logging.info(f"Discarding stale refresh #{sequence}; #{self._published_sequence} already published")
            return self.current

        if raw is not None:
            self._samples.ingest(raw)
            self._refresh_buffered_days(now)
        return self._publish(now, sequence)

    def refresh_from_samples(
        self,
        raw_samples: Iterable[GlucoseSample],
        now: datetime | None = None,
        *,
        daily_history: Iterable[DailyAggregate] | None = None,
    ) -> MetabolicSnapshot:
        """Synchronous refresh for callers that already hold the readings."""

        now = now or self._clock()
        require_aware(now)
        sequence = next(self._sequence)
        self._samples.ingest(raw_samples)
        if daily_history is not None:
            self._history.ensure_thresholds(self._settings.thresholds)
            self._history.update(daily_history)
        return self._publish(now, sequence)

    def _publish(self, now: datetime, sequence: int) -> MetabolicSnapshot:
        snapshot = compute_snapshot(
            self._samples.samples,
            self._history.values(),
            now,
            self._settings,
            sequence=sequence,
        )
        self._snapshots.publish(snapshot)
        self._published_sequence = max(self._published_sequence, sequence)
        return snapshot

    def _refresh_buffered_days(self, now: datetime) -> None:
        """Rebuild the past days held in the sample buffer.

        Readings can reach the platform hours late, so a day cached right after
        midnight is replaced once the buffer holds the rest of it.
        """

        self._history.ensure_thresholds(self._settings.thresholds)
        today = now.astimezone(self._settings.tz).date()
        days = min(self._samples.retained_days - 1, self._settings.history_days)
        self._history.update(
            build_daily_history(self._samples.samples, today, self._settings, days=days)
        )

    def _history_dates(self, today: date) -> list[date]:
        return past_service_dates(today, self._settings.history_days)

    async def _refresh_history(self, now: datetime) -> None:
        tz = self._settings.tz
        self._history.ensure_thresholds(self._settings.thresholds)
        wanted = self._history_dates(now.astimezone(tz).date())
        self._history.prune(set(wanted))
        missing = self._history.missing(wanted)
        if not missing:
            return

        today = now.astimezone(tz).date()
        start = day_start(missing[0], tz)
        end = day_start(today, tz)
        try:
            raw = await self._history_source.fetch_samples(start, end)
        except Exception as exc:
            logging.warning(f"Daily history fetch failed for {len(missing)} day(s); keeping cache: {exc!r}")
            return

        self._history.update(
            build_daily_history(raw, today, self._settings, only_dates=missing)
        )
