"""API clients and helpers for external services."""

from .backend_client import BackendClient
from .glucose_client import (
    GlucoseClient,
    HttpSampleSource,
    convert_readings_result,
)

__all__ = [
    "BackendClient",
    "GlucoseClient",
    "HttpSampleSource",
    "convert_readings_result",
]
