"""Insulin and carbohydrate daily ratios."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping

import pandas as pd

from .config import AggregationSettings


class InsulinDeliveryReason(str, Enum):
    BASAL = "basal"
    BOLUS = "bolus"

    @classmethod
    def from_metadata(cls, value: Any) -> "InsulinDeliveryReason":
        """Parse a delivery-reason tag (``1``/``2`` codes or names)."""

        if isinstance(value, cls):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            codes = {1: cls.BASAL, 2: cls.BOLUS}
            if int(value) in codes:
                return codes[int(value)]
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized.isdigit():
                return cls.from_metadata(int(normalized))
            for member in cls:
                if member.value == normalized:
                    return member
        raise ValueError(f"Unknown insulin delivery reason: {value!r}")


@dataclass(frozen=True)
class InsulinEvent:
    timestamp: datetime
    units: float
    reason: InsulinDeliveryReason


@dataclass(frozen=True)
class DailyRatio:
    service_date: date
    value: float


def daily_insulin_totals(
    events: Iterable[InsulinEvent],
    reason: InsulinDeliveryReason,
    settings: AggregationSettings | None = None,
) -> dict[date, float]:
    """Sum units per local calendar day for one delivery reason."""

    settings = settings or AggregationSettings()
    rows = [
        {"timestamp": event.timestamp, "units": max(0.0, float(event.units))}
        for event in events
        if event.reason is reason
    ]
    if not rows:
        return {}
    frame = pd.DataFrame(rows)
    frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    frame["service_date"] = frame["timestamp"].dt.tz_convert(settings.tz).dt.date
    totals = frame.groupby("service_date", sort=True)["units"].sum()
    return {service_date: float(units) for service_date, units in totals.items()}


def bolus_basal_ratios(bolus: Mapping[date, float], basal: Mapping[date, float]) -> list[DailyRatio]:
    """Bolus units divided by basal units per bolus day; 0 when there is no basal."""

    out = []
    for service_date in sorted(bolus):
        basal_units = basal.get(service_date, 0.0)
        ratio = bolus[service_date] / basal_units if basal_units > 0 else 0.0
        out.append(DailyRatio(service_date=service_date, value=ratio))
    return out


def carb_bolus_ratios(carbs: Mapping[date, float], bolus: Mapping[date, float]) -> list[DailyRatio]:
    """Grams of carbohydrate per bolus unit per bolus day; 0 when no bolus."""

    out = []
    for service_date in sorted(bolus):
        bolus_units = bolus[service_date]
        grams = max(0.0, carbs.get(service_date, 0.0))
        value = grams / bolus_units if bolus_units > 0 else 0.0
        out.append(DailyRatio(service_date=service_date, value=value))
    return out
