"""Telemetry store — per-device series, retention, windows, merged charts."""

from __future__ import annotations

from hubwatch.telemetry.merge import (
    ChartView,
    DeviceChartView,
    MergedChartData,
    MergedChartView,
    MergeRegistry,
    chart_sources,
)
from hubwatch.telemetry.series import (
    MAX_RAW_LINES,
    RETENTION_MS,
    ChartPoint,
    DeviceChartData,
    DeviceTelemetryState,
    FieldChartData,
    TimeWindow,
)
from hubwatch.telemetry.store import TelemetryStore
from hubwatch.telemetry.throttle import UpdateThrottle
from hubwatch.telemetry.windows import enclosing_window, filter_custom_range

__all__ = [
    "MAX_RAW_LINES",
    "RETENTION_MS",
    "ChartPoint",
    "ChartView",
    "DeviceChartData",
    "DeviceChartView",
    "DeviceTelemetryState",
    "FieldChartData",
    "MergeRegistry",
    "MergedChartData",
    "MergedChartView",
    "TelemetryStore",
    "TimeWindow",
    "UpdateThrottle",
    "chart_sources",
    "enclosing_window",
    "filter_custom_range",
]
