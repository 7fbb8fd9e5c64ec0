"""Pydantic v2 models for sensor mappings (line-protocol schemas).

A mapping describes how to recognise one device's text protocol and how
to pull numeric readings out of each line.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SensorFormat(StrEnum):
    """Line formats understood by the protocol engine."""

    KEY_VALUE = "key-value"
    CSV = "csv"
    JSON = "json"


class SensorField(BaseModel):
    """One numeric field extracted from a matched line."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    unit: str = ""
    color: str = "#36A2EB"
    capture_group: int = Field(default=1, ge=1, alias="captureGroup")


class SensorMapping(BaseModel):
    """A named rule set for detecting and parsing one sensor protocol.

    Capture groups are 1-based, matching native regex group numbering,
    and must be unique within a mapping.  JSON mappings may declare no
    fields at all: numeric keys are discovered from each record.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    format: SensorFormat = SensorFormat.KEY_VALUE
    pattern: str = ""
    fields: list[SensorField] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_capture_groups(self) -> SensorMapping:
        groups = [f.capture_group for f in self.fields]
        dupes = sorted({g for g in groups if groups.count(g) > 1})
        if dupes:
            raise ValueError(
                f"Mapping '{self.id}' reuses capture group(s): {', '.join(map(str, dupes))}"
            )
        return self

    @property
    def is_detectable(self) -> bool:
        """``False`` for mappings that can never match a line."""
        return bool(self.pattern) and bool(self.fields)


class SensorReading(BaseModel):
    """A single numeric value parsed from a line."""

    name: str
    value: float
    unit: str = ""
    color: str = ""


class ParsedSensorData(BaseModel):
    """One mapping match against one line."""

    sensor_id: str
    sensor_name: str
    timestamp: datetime
    fields: list[SensorReading]
