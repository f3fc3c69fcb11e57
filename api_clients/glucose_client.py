"""
Glucose reading API client and sample-source adapter for the aggregation engine.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from api_clients.backend_client import BackendClient
from models.glucose_models import (
    GlucoseReadingRequest,
    GlucoseReadingsResult,
    GlucoseUnitEnum,
)

from cgm_aggregator.models import GlucoseSample

GLUCOSE_READING_ENDPOINT = "/cgm/reading"
MGDL_PER_MMOL = 18.0
_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _format_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(_TIME_FORMAT)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GlucoseClient:
    """
    Client for fetching raw glucose readings via BackendClient.
    """

    def __init__(self, client: Optional[BackendClient] = None):
        self.client = client or BackendClient()

    async def get_glucose_readings(self, start: datetime, end: datetime) -> GlucoseReadingsResult:
        """Get glucose readings for [start, end] with strict validation and logging."""
        request_data = GlucoseReadingRequest(startTime=_format_time(start), endTime=_format_time(end))
        data = await self.client.post_json(GLUCOSE_READING_ENDPOINT, request_data.model_dump())

        if not isinstance(data, dict):
            raise RuntimeError(f"Unexpected non-JSON response from {GLUCOSE_READING_ENDPOINT}: {data!r}")
        code = data.get("code")
        payload = data.get("data")
        if code not in (0, 200) or payload is None:
            logging.error(
                f"Glucose readings failed: code={code}, endpoint={GLUCOSE_READING_ENDPOINT}, body={data!r}"
            )
            raise RuntimeError(
                f"Glucose readings API error (code={code})"
            )
        return GlucoseReadingsResult(**payload)


def convert_readings_result(result: GlucoseReadingsResult) -> List[GlucoseSample]:
    """Convert an API payload into mg/dL samples, dropping incomplete readings."""
    samples: List[GlucoseSample] = []
    for reading in result.readings or []:
        timestamp = _parse_timestamp(reading.timestamp)
        if timestamp is None or reading.value is None:
            continue
        value = reading.value
        if reading.unit is GlucoseUnitEnum.MMOL_L:
            value = value * MGDL_PER_MMOL
        samples.append(GlucoseSample(timestamp=timestamp, value_mgdl=float(value)))
    return samples


class HttpSampleSource:
    """GlucoseSampleSource backed by the glucose reading API."""

    def __init__(self, client: Optional[GlucoseClient] = None):
        self._client = client or GlucoseClient()

    async def fetch_samples(self, start: datetime, end: datetime) -> Sequence[GlucoseSample]:
        result = await self._client.get_glucose_readings(start, end)
        return convert_readings_result(result)
