"""Command-line utility for computing a metabolic snapshot from a readings file.

The file holds a JSON list of readings::

    [
        {"timestamp": "2025-01-01T00:00:00Z", "glucose_mg_dL": 110},
        {"timestamp": "2025-01-01T00:05:00Z", "glucose_mg_dL": 114},
        ...
    ]

The same readings feed both the recent sample buffer and the daily history,
so a file spanning 90 days yields fully populated period summaries. Results
are written as JSON to stdout or to ``--output`` if provided.
"""
from __future__ import annotations

import argparse
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .config import AggregationSettings
from .daily import build_daily_history
from .engine import MetabolicEngine
from .models import (
    CoverageResult,
    GlucoseSample,
    GlucoseStatistics,
    MetabolicSnapshot,
    PeriodSummary,
    WindowSnapshot,
)
from .sample_store import samples_from_frame


class JsonFileSource:
    """Sample source backed by a JSON readings file."""

    def __init__(self, path: Path) -> None:
        if not path.is_file():
            raise FileNotFoundError(f"Readings file not found: {path}")
        self._path = path
        self._samples: list[GlucoseSample] | None = None

    def load(self) -> list[GlucoseSample]:
        if self._samples is None:
            with self._path.open() as handle:
                records = json.load(handle)
            if not isinstance(records, list):
                raise ValueError(f"{self._path} must contain a JSON list of readings")
            self._samples = samples_from_frame(pd.DataFrame(records))
        return self._samples

    async def fetch_samples(self, start: datetime, end: datetime) -> Sequence[GlucoseSample]:
        return [s for s in self.load() if start <= s.timestamp <= end]


def _statistics_to_dict(stats: GlucoseStatistics) -> dict[str, Any]:
    return {
        "mean_mgdl": stats.mean_mgdl,
        "sd_mgdl": stats.sd_mgdl,
        "cv_percent": stats.cv_percent,
    }


def _coverage_to_dict(coverage: CoverageResult) -> dict[str, Any]:
    return {
        "expected_minutes": coverage.expected_minutes,
        "coverage_minutes": coverage.coverage_minutes,
        "coverage_ratio": coverage.coverage_ratio,
        "is_partial": coverage.is_partial,
    }


def _window_to_dict(snapshot: WindowSnapshot) -> dict[str, Any]:
    return {
        "kind": snapshot.window.kind.value,
        "start": snapshot.window.start.isoformat(),
        "end": snapshot.window.end.isoformat(),
        "sample_count": snapshot.sample_count,
        **_coverage_to_dict(snapshot.coverage),
        "tir_minutes": snapshot.tir.as_dict(),
        **_statistics_to_dict(snapshot.statistics),
        "gmi_percent": snapshot.gmi_percent,
    }


def _period_to_dict(summary: PeriodSummary) -> dict[str, Any]:
    return {
        "days": summary.days,
        "history_days_used": summary.history_days_used,
        "expected_minutes": summary.expected_minutes,
        "coverage_minutes": summary.coverage_minutes,
        "coverage_ratio": summary.coverage_ratio,
        "is_partial": summary.is_partial,
        "tir_minutes": summary.tir.as_dict(),
        **_statistics_to_dict(summary.statistics),
        "gmi_percent": summary.gmi_percent,
    }


def snapshot_to_dict(snapshot: MetabolicSnapshot) -> dict[str, Any]:
    return {
        "generated_at": snapshot.generated_at.isoformat(),
        "sequence": snapshot.sequence,
        "sample_count": snapshot.sample_count,
        "today": _window_to_dict(snapshot.today),
        "last_24h": _window_to_dict(snapshot.last_24h),
        "periods": {str(days): _period_to_dict(summary) for days, summary in sorted(snapshot.periods.items())},
    }


def run(source: JsonFileSource, settings: AggregationSettings, now: datetime) -> MetabolicSnapshot:
    engine = MetabolicEngine(source, settings)
    samples = source.load()
    today = now.astimezone(settings.tz).date()
    history = build_daily_history(samples, today, settings)
    start = engine.sample_store.retention_start(now, settings.tz)
    recent = [s for s in samples if start <= s.timestamp <= now]
    return engine.refresh_from_samples(recent, now, daily_history=history)


def _parse_now(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute CGM coverage, TIR and period summaries")
    parser.add_argument("--samples", type=Path, required=True, help="JSON file with a list of readings")
    parser.add_argument("--timezone", help="IANA timezone for calendar days (default: $CGM_LOCAL_TIMEZONE or UTC)")
    parser.add_argument("--now", help="ISO-8601 evaluation instant (default: current time)")
    parser.add_argument("--output", type=Path, help="Optional output JSON file")
    parser.add_argument("--indent", type=int, default=None, help="Pretty-print JSON with the given indent")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:  # pragma: no cover - CLI entry point
    args = parse_args(argv)
    settings = AggregationSettings.from_env()
    if args.timezone:
        settings = AggregationSettings(thresholds=settings.thresholds, local_timezone=args.timezone)
    snapshot = run(JsonFileSource(args.samples), settings, _parse_now(args.now))

    output_text = json.dumps(snapshot_to_dict(snapshot), indent=args.indent)
    if args.output:
        args.output.write_text(output_text)
    else:
        print(output_text)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
