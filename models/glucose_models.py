"""
Glucose reading API models.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GlucoseUnitEnum(str, Enum):
    MG_DL = "mg/dL"
    MMOL_L = "mmol/L"


class GlucoseReadingRequest(BaseModel):
    """
    Request model for the glucose reading API.
    """
    startTime: str = Field(description="Range start, ISO-8601 UTC")
    endTime: str = Field(description="Range end, ISO-8601 UTC")
    includeRawData: bool = Field(default=True, description="Return individual readings")


class GlucoseReading(BaseModel):
    """
    Model for a single glucose reading.
    """
    model_config = ConfigDict(populate_by_name=True)

    timestamp: Optional[str] = Field(default=None, description="Reading instant, ISO-8601")
    value: Optional[float] = Field(default=None, description="Glucose concentration")
    unit: GlucoseUnitEnum = Field(default=GlucoseUnitEnum.MG_DL, description="Unit of value")


class GlucoseReadingsResult(BaseModel):
    """
    Model for the glucose reading API payload.
    """
    startTime: Optional[str] = Field(default=None, description="Range start")
    endTime: Optional[str] = Field(default=None, description="Range end")
    readings: Optional[List[GlucoseReading]] = Field(default=None, description="Readings in the range")
