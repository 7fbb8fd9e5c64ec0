"""In-memory time-series records owned by the telemetry store."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hubwatch.models.sensor import SensorMapping

RETENTION_MS = 60 * 60 * 1000
MAX_RAW_LINES = 1000


class TimeWindow(StrEnum):
    """Fixed query windows understood by the store."""

    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"

    @property
    def milliseconds(self) -> int:
        return _WINDOW_MS[self]


_WINDOW_MS: dict[TimeWindow, int] = {
    TimeWindow.FIVE_MINUTES: 5 * 60 * 1000,
    TimeWindow.FIFTEEN_MINUTES: 15 * 60 * 1000,
    TimeWindow.THIRTY_MINUTES: 30 * 60 * 1000,
    TimeWindow.ONE_HOUR: 60 * 60 * 1000,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def to_epoch_ms(ts: datetime) -> int:
    """Epoch milliseconds for *ts*; naive datetimes are taken as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return int(ts.timestamp() * 1000)


@dataclass(slots=True, frozen=True)
class ChartPoint:
    timestamp: int
    """Epoch milliseconds."""
    value: float


@dataclass(slots=True)
class FieldChartData:
    """One field's series, ordered by timestamp."""

    field_name: str
    unit: str
    color: str
    data: list[ChartPoint] = field(default_factory=list)

    def append(self, point: ChartPoint) -> None:
        self.data.append(point)

    def prune(self, now: int, max_age_ms: int = RETENTION_MS) -> None:
        """Drop points at or beyond *max_age_ms* old."""
        self.data = [p for p in self.data if now - p.timestamp < max_age_ms]

    def window(self, now: int, window_ms: int) -> FieldChartData:
        """Copy of this series restricted to the last *window_ms*."""
        return replace(self, data=[p for p in self.data if now - p.timestamp < window_ms])

    def between(self, start_ms: int, end_ms: int) -> FieldChartData:
        """Copy of this series restricted to ``start_ms <= ts <= end_ms``."""
        return replace(self, data=[p for p in self.data if start_ms <= p.timestamp <= end_ms])


@dataclass(slots=True)
class DeviceChartData:
    """All field series for one device-port."""

    device_id: str
    hub_id: str
    port_id: str
    sensor_name: str = "Unknown"
    fields: list[FieldChartData] = field(default_factory=list)

    def field_named(self, name: str) -> FieldChartData | None:
        for series in self.fields:
            if series.field_name == name:
                return series
        return None

    def with_fields(self, fields: list[FieldChartData]) -> DeviceChartData:
        return replace(self, fields=fields)


@dataclass(slots=True)
class DeviceTelemetryState:
    """Everything the store keeps for one device-port."""

    chart_data: DeviceChartData
    sensor_mapping: SensorMapping | None = None
    raw_lines: deque[str] = field(default_factory=lambda: deque(maxlen=MAX_RAW_LINES))
    hex_lines: deque[str] = field(default_factory=lambda: deque(maxlen=MAX_RAW_LINES))
    last_update: int = 0
    frame_count: int = 0

    @property
    def raw_data(self) -> str:
        """Terminal text buffer (last :data:`MAX_RAW_LINES` lines)."""
        return "\n".join(self.raw_lines)

    @property
    def hex_data(self) -> str:
        return "".join(self.hex_lines)
