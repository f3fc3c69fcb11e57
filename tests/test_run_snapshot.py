import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import pytest

from cgm_aggregator.config import AggregationSettings
from cgm_aggregator.run_snapshot import JsonFileSource, main, run, snapshot_to_dict

NOW = datetime(2024, 3, 10, 13, 0, tzinfo=timezone.utc)


def _write_readings(path: Path) -> Path:
    timestamps = list(pd.date_range("2024-03-09 00:00", periods=288 + 60, freq="5min", tz="UTC"))
    records = [
        {"timestamp": ts.strftime("%Y-%m-%dT%H:%M:%SZ"), "glucose_mg_dL": 100 if i < 288 else 200}
        for i, ts in enumerate(timestamps)
    ]
    # duplicate reading and an unusable row
    records.append({"timestamp": records[0]["timestamp"], "glucose_mg_dL": 100})
    records.append({"timestamp": "garbage", "glucose_mg_dL": 100})
    path.write_text(json.dumps(records))
    return path


def test_json_file_source_filters_range(tmp_path: Path):
    source = JsonFileSource(_write_readings(tmp_path / "readings.json"))

    assert len(source.load()) == 349
    today_only = asyncio.run(source.fetch_samples(datetime(2024, 3, 10, tzinfo=timezone.utc), NOW))
    assert len(today_only) == 60


def test_json_file_source_validates_input(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        JsonFileSource(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"timestamp": "2024-03-10T00:00:00Z"}))
    with pytest.raises(ValueError):
        JsonFileSource(bad).load()


def test_run_produces_serializable_snapshot(tmp_path: Path):
    source = JsonFileSource(_write_readings(tmp_path / "readings.json"))

    snapshot = run(source, AggregationSettings(), NOW)
    payload = snapshot_to_dict(snapshot)

    assert payload["today"]["kind"] == "today_so_far"
    assert payload["today"]["tir_minutes"]["high"] == 300
    assert payload["today"]["expected_minutes"] == 780
    assert payload["last_24h"]["coverage_minutes"] == 1440
    assert sorted(payload["periods"]) == ["14", "30", "7", "90"]
    week = payload["periods"]["7"]
    assert week["history_days_used"] == 6
    assert week["coverage_minutes"] == 1440 + 300
    assert week["tir_minutes"]["in_range"] == 1440
    json.dumps(payload)


def test_main_writes_output_file(tmp_path: Path, monkeypatch):
    for key in ("CGM_LOCAL_TIMEZONE", "CGM_TIR_VERY_LOW", "CGM_TIR_LOW", "CGM_TIR_HIGH", "CGM_TIR_VERY_HIGH"):
        monkeypatch.delenv(key, raising=False)
    readings = _write_readings(tmp_path / "readings.json")
    output = tmp_path / "snapshot.json"

    exit_code = main(
        ["--samples", str(readings), "--now", "2024-03-10T13:00:00Z", "--output", str(output), "--timezone", "UTC"]
    )

    assert exit_code == 0
    payload = json.loads(output.read_text())
    assert payload["sequence"] == 1
    assert payload["sample_count"] == 348
