"""CGM time-series aggregation: coverage, time-in-range and period summaries."""

from .cache import DailyHistoryCache
from .config import AggregationSettings, TIRThresholds
from .coverage import compute_coverage
from .daily import build_daily_history
from .engine import GlucoseSampleSource, MetabolicEngine, compute_snapshot
from .models import (
    CoverageResult,
    DailyAggregate,
    GlucoseSample,
    GlucoseStatistics,
    GlycemicBand,
    MetabolicSnapshot,
    PeriodSummary,
    TIRBucketMinutes,
    TimeWindow,
    WindowKind,
    WindowSnapshot,
)
from .periods import HybridPeriodAggregator, build_period
from .ratios import (
    DailyRatio,
    InsulinDeliveryReason,
    InsulinEvent,
    bolus_basal_ratios,
    carb_bolus_ratios,
    daily_insulin_totals,
)
from .sample_store import SampleStore
from .stats import compute_statistics
from .store import SnapshotStore
from .tir import classify
from .windows import WindowAggregator

__all__ = [
    "AggregationSettings",
    "CoverageResult",
    "DailyAggregate",
    "DailyHistoryCache",
    "DailyRatio",
    "GlucoseSample",
    "GlucoseSampleSource",
    "GlucoseStatistics",
    "GlycemicBand",
    "HybridPeriodAggregator",
    "InsulinDeliveryReason",
    "InsulinEvent",
    "MetabolicEngine",
    "MetabolicSnapshot",
    "PeriodSummary",
    "SampleStore",
    "SnapshotStore",
    "TIRBucketMinutes",
    "TIRThresholds",
    "TimeWindow",
    "WindowAggregator",
    "WindowKind",
    "WindowSnapshot",
    "bolus_basal_ratios",
    "build_daily_history",
    "build_period",
    "carb_bolus_ratios",
    "classify",
    "compute_coverage",
    "compute_snapshot",
    "compute_statistics",
    "daily_insulin_totals",
]
