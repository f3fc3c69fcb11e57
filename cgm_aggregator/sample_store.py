"""Deduplicated, time-ordered buffer of recent CGM samples."""
from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Sequence

import pandas as pd

from .models import GlucoseSample

SortedSampleSet = tuple[GlucoseSample, ...]


def _second_key(timestamp: datetime) -> int:
    # Half-up rounding to whole seconds; sub-second duplicates collapse.
    return math.floor(timestamp.timestamp() + 0.5)


def require_aware(timestamp: datetime) -> None:
    if timestamp.tzinfo is None or timestamp.utcoffset() is None:
        raise ValueError(f"Timestamps must be timezone-aware, got {timestamp!r}")


def deduplicate(raw_samples: Iterable[GlucoseSample]) -> SortedSampleSet:
    """Collapse same-second duplicates (last one wins) and sort ascending."""

    by_second: dict[int, GlucoseSample] = {}
    for sample in raw_samples:
        require_aware(sample.timestamp)
        by_second[_second_key(sample.timestamp)] = sample
    return tuple(sorted(by_second.values(), key=lambda s: s.timestamp.timestamp()))


def local_midnight(moment: datetime, tz: tzinfo) -> datetime:
    """Return the local start of the calendar day containing ``moment``."""

    return day_start(moment.astimezone(tz).date(), tz)


def day_start(service_date: date, tz: tzinfo) -> datetime:
    return datetime.combine(service_date, time(0), tzinfo=tz)


class SampleStore:
    """Holds the sample buffer for the most recent calendar days.

    Every ingest replaces the buffer wholesale. Callers that fail to fetch
    simply do not call :meth:`ingest`, leaving stale data in place.
    """

    def __init__(self, retained_days: int = 3) -> None:
        if retained_days < 1:
            raise ValueError("retained_days must be >= 1")
        self._retained_days = retained_days
        self._samples: SortedSampleSet = ()

    @property
    def samples(self) -> SortedSampleSet:
        return self._samples

    @property
    def retained_days(self) -> int:
        return self._retained_days

    @property
    def latest(self) -> GlucoseSample | None:
        return self._samples[-1] if self._samples else None

    def __len__(self) -> int:
        return len(self._samples)

    def retention_start(self, now: datetime, tz: tzinfo) -> datetime:
        """Local midnight ``retained_days - 1`` days before today."""

        today = now.astimezone(tz).date()
        return day_start(today - timedelta(days=self._retained_days - 1), tz)

    def ingest(self, raw_samples: Iterable[GlucoseSample]) -> SortedSampleSet:
        samples = deduplicate(raw_samples)
        self._samples = samples
        return samples

    def clear(self) -> None:
        self._samples = ()


def samples_from_frame(frame: pd.DataFrame) -> list[GlucoseSample]:
    """Convert a ``timestamp``/``glucose_mg_dL`` frame into samples.

    Rows with unparseable timestamps or values are dropped. Naive timestamps
    are taken as UTC.
    """

    if frame.empty:
        return []
    if "timestamp" not in frame or "glucose_mg_dL" not in frame:
        raise ValueError("CGM readings must include 'timestamp' and 'glucose_mg_dL' columns")

    df = frame[["timestamp", "glucose_mg_dL"]].copy()
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    df["glucose_mg_dL"] = pd.to_numeric(df["glucose_mg_dL"], errors="coerce")
    df = df.dropna(subset=["timestamp", "glucose_mg_dL"])
    return [
        GlucoseSample(timestamp=ts.to_pydatetime(), value_mgdl=float(value))
        for ts, value in zip(df["timestamp"], df["glucose_mg_dL"])
    ]


def samples_to_frame(samples: Sequence[GlucoseSample]) -> pd.DataFrame:
    if not samples:
        return pd.DataFrame(
            {
                "timestamp": pd.Series([], dtype="datetime64[ns, UTC]"),
                "glucose_mg_dL": pd.Series([], dtype=float),
            }
        )
    return pd.DataFrame(
        {
            "timestamp": pd.to_datetime([s.timestamp for s in samples], utc=True),
            "glucose_mg_dL": [float(s.value_mgdl) for s in samples],
        }
    )
