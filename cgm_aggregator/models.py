"""Core data models for CGM window aggregation."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Mapping, Optional

MINUTES_PER_DAY = 1440


@dataclass(frozen=True)
class GlucoseSample:
    """A single CGM reading."""

    timestamp: datetime
    value_mgdl: float


class GlycemicBand(str, Enum):
    """Clinical glucose bands used for time-in-range."""

    VERY_LOW = "very_low"
    LOW = "low"
    IN_RANGE = "in_range"
    HIGH = "high"
    VERY_HIGH = "very_high"


class WindowKind(str, Enum):
    """Flavours of time window the aggregator knows about."""

    ROLLING = "rolling"
    TODAY_SO_FAR = "today_so_far"
    CALENDAR_DAY = "calendar_day"
    PERIOD = "period"


@dataclass(frozen=True)
class TimeWindow:
    """Interval over which statistics are computed.

    Rolling and today-so-far windows are closed ``[start, end]``. Calendar
    days are half-open ``[start, end)`` so that a reading at midnight belongs
    to exactly one day.
    """

    kind: WindowKind
    start: datetime
    end: datetime
    closed_end: bool = True
    days: int = 1

    def contains(self, timestamp: datetime) -> bool:
        if timestamp < self.start:
            return False
        if self.closed_end:
            return timestamp <= self.end
        return timestamp < self.end

    @property
    def expected_minutes(self) -> int:
        if self.kind is WindowKind.CALENDAR_DAY:
            return MINUTES_PER_DAY
        if self.kind is WindowKind.PERIOD:
            return max(0, self.days) * MINUTES_PER_DAY
        # Instants, not wall clock: the endpoints may share a DST-observing tzinfo.
        elapsed = self.end.timestamp() - self.start.timestamp()
        return max(0, int(elapsed // 60))


@dataclass(frozen=True)
class CoverageResult:
    """How much of a window is backed by samples."""

    expected_minutes: int
    coverage_minutes: int
    coverage_ratio: float
    is_partial: bool

    @classmethod
    def empty(cls, expected_minutes: int = 0) -> "CoverageResult":
        expected = max(0, expected_minutes)
        return cls(
            expected_minutes=expected,
            coverage_minutes=0,
            coverage_ratio=0.0,
            is_partial=expected > 0,
        )


@dataclass(frozen=True)
class TIRBucketMinutes:
    """Minutes spent in each glycemic band."""

    very_low: int = 0
    low: int = 0
    in_range: int = 0
    high: int = 0
    very_high: int = 0

    @property
    def total(self) -> int:
        return self.very_low + self.low + self.in_range + self.high + self.very_high

    def minutes(self, band: GlycemicBand) -> int:
        return getattr(self, band.value)

    def as_dict(self) -> dict[str, int]:
        return {band.value: self.minutes(band) for band in GlycemicBand}

    @classmethod
    def from_bands(cls, minutes: Mapping[GlycemicBand, int]) -> "TIRBucketMinutes":
        return cls(**{band.value: int(minutes.get(band, 0)) for band in GlycemicBand})

    def __add__(self, other: "TIRBucketMinutes") -> "TIRBucketMinutes":
        if not isinstance(other, TIRBucketMinutes):
            return NotImplemented
        return TIRBucketMinutes(
            very_low=self.very_low + other.very_low,
            low=self.low + other.low,
            in_range=self.in_range + other.in_range,
            high=self.high + other.high,
            very_high=self.very_high + other.very_high,
        )


@dataclass(frozen=True)
class GlucoseStatistics:
    """Mean, population SD and CV; ``None`` marks missing data, not zero."""

    mean_mgdl: Optional[float] = None
    sd_mgdl: Optional[float] = None
    cv_percent: Optional[float] = None


@dataclass(frozen=True)
class WindowSnapshot:
    """Atomic result for a single window."""

    window: TimeWindow
    coverage: CoverageResult
    tir: TIRBucketMinutes
    statistics: GlucoseStatistics
    sample_count: int

    @property
    def gmi_percent(self) -> Optional[float]:
        from .stats import gmi_percent  # Local import to avoid circular dependency

        return gmi_percent(self.statistics.mean_mgdl)


@dataclass(frozen=True)
class DailyAggregate:
    """Finalized coverage and TIR for one local calendar day."""

    service_date: date
    coverage: CoverageResult
    tir: TIRBucketMinutes
    statistics: GlucoseStatistics = field(default_factory=GlucoseStatistics)
    sample_count: int = 0

    @property
    def coverage_minutes(self) -> int:
        return self.coverage.coverage_minutes

    @property
    def expected_minutes(self) -> int:
        return self.coverage.expected_minutes


@dataclass(frozen=True)
class PeriodSummary:
    """Hybrid summary over N days: N-1 finalized days plus today so far."""

    days: int
    tir: TIRBucketMinutes
    coverage_minutes: int
    expected_minutes: int
    coverage_ratio: float
    is_partial: bool
    statistics: GlucoseStatistics = field(default_factory=GlucoseStatistics)
    history_days_used: int = 0

    @property
    def gmi_percent(self) -> Optional[float]:
        from .stats import gmi_percent  # Local import to avoid circular dependency

        return gmi_percent(self.statistics.mean_mgdl)


@dataclass(frozen=True)
class MetabolicSnapshot:
    """Complete set of derived summaries published after one refresh."""

    generated_at: datetime
    sequence: int
    sample_count: int
    today: WindowSnapshot
    last_24h: WindowSnapshot
    periods: Mapping[int, PeriodSummary] = field(default_factory=dict)

    def period(self, days: int) -> Optional[PeriodSummary]:
        return self.periods.get(days)
