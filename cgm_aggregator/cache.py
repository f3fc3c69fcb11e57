"""Cache of finalized daily aggregates."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional

from .config import TIRThresholds
from .models import DailyAggregate


@dataclass
class DailyHistoryCache:
    """In-memory store of past-day aggregates keyed by service date.

    Past days are immutable, so an entry is only dropped when the
    classification thresholds change or the day ages out of the history range.
    """

    thresholds: Optional[TIRThresholds] = None
    _store: Dict[date, DailyAggregate] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, service_date: date) -> bool:
        return service_date in self._store

    def get(self, service_date: date) -> DailyAggregate | None:
        return self._store.get(service_date)

    def set(self, aggregate: DailyAggregate) -> None:
        self._store[aggregate.service_date] = aggregate

    def update(self, aggregates: Iterable[DailyAggregate]) -> None:
        for aggregate in aggregates:
            self.set(aggregate)

    def values(self) -> list[DailyAggregate]:
        return [self._store[key] for key in sorted(self._store)]

    def missing(self, service_dates: Iterable[date]) -> list[date]:
        return [d for d in service_dates if d not in self._store]

    def ensure_thresholds(self, thresholds: TIRThresholds) -> bool:
        """Drop every entry if ``thresholds`` differ from the cached ones."""

        if self.thresholds == thresholds:
            return False
        if self._store:
            logging.info(f"TIR thresholds changed; invalidating {len(self._store)} cached daily aggregates")
        self._store.clear()
        self.thresholds = thresholds
        return True

    def prune(self, keep_dates: set[date]) -> None:
        """Remove cached days that are no longer needed."""

        to_remove = [key for key in self._store if key not in keep_dates]
        for key in to_remove:
            del self._store[key]

    def clear(self) -> None:
        self._store.clear()
