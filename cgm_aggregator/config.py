"""Threshold and runtime settings for the aggregation engine."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "UTC"
DEFAULT_PERIOD_DAYS: tuple[int, ...] = (7, 14, 30, 90)


@dataclass(frozen=True)
class TIRThresholds:
    """Band limits in mg/dL.

    ``very_low`` and ``low`` are exclusive upper bounds, ``high`` and
    ``very_high`` are inclusive upper bounds.
    """

    very_low: float = 54.0
    low: float = 70.0
    high: float = 180.0
    very_high: float = 250.0

    def __post_init__(self) -> None:
        if not (0 < self.very_low < self.low <= self.high < self.very_high):
            raise ValueError(
                "TIR thresholds must satisfy 0 < very_low < low <= high < very_high, "
                f"got {self.very_low}/{self.low}/{self.high}/{self.very_high}"
            )


@dataclass(frozen=True)
class AggregationSettings:
    """Engine-wide settings."""

    thresholds: TIRThresholds = field(default_factory=TIRThresholds)
    local_timezone: str = DEFAULT_TIMEZONE
    minutes_per_sample: int = 5
    retained_days: int = 3
    history_days: int = 90
    period_days: tuple[int, ...] = DEFAULT_PERIOD_DAYS

    def __post_init__(self) -> None:
        if self.minutes_per_sample <= 0:
            raise ValueError("minutes_per_sample must be positive")
        if self.retained_days < 1:
            raise ValueError("retained_days must be >= 1")
        if any(days < 1 for days in self.period_days):
            raise ValueError("period_days entries must be >= 1")
        if self.period_days and max(self.period_days) - 1 > self.history_days:
            raise ValueError("history_days must cover the longest period")
        try:
            ZoneInfo(self.local_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {self.local_timezone!r}") from None

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.local_timezone)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AggregationSettings":
        """Build settings from ``CGM_*`` environment variables."""

        env = os.environ if environ is None else environ
        defaults = TIRThresholds()
        thresholds = TIRThresholds(
            very_low=_float_env(env, "CGM_TIR_VERY_LOW", defaults.very_low),
            low=_float_env(env, "CGM_TIR_LOW", defaults.low),
            high=_float_env(env, "CGM_TIR_HIGH", defaults.high),
            very_high=_float_env(env, "CGM_TIR_VERY_HIGH", defaults.very_high),
        )
        return cls(
            thresholds=thresholds,
            local_timezone=env.get("CGM_LOCAL_TIMEZONE") or DEFAULT_TIMEZONE,
        )


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None
