"""Per-device time-series store for streamed serial telemetry.

Owns one :class:`DeviceTelemetryState` per ``hub:port`` key.  State is
only mutated through :meth:`TelemetryStore.ingest`; queries return
copies so callers can never corrupt a live series.

Runs on a single event loop: ingestion completes before the next frame
is handled, so no locking is needed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hubwatch.models.messages import device_key
from hubwatch.protocol.decoder import hex_dump
from hubwatch.protocol.parser import parse_frame
from hubwatch.telemetry.merge import (
    DeviceChartView,
    MergedChartData,
    MergedChartView,
    MergeRegistry,
)
from hubwatch.telemetry.series import (
    RETENTION_MS,
    ChartPoint,
    DeviceChartData,
    DeviceTelemetryState,
    FieldChartData,
    TimeWindow,
    now_ms,
    to_epoch_ms,
)
from hubwatch.telemetry.throttle import UpdateThrottle

if TYPE_CHECKING:
    from collections.abc import Callable

    from hubwatch.models.messages import TelemetryStreamMessage
    from hubwatch.protocol.mappings import MappingRegistry
    from hubwatch.telemetry.merge import ChartView

logger = logging.getLogger(__name__)


class TelemetryStore:
    """Accumulates parsed readings per device and serves windowed queries.

    Parameters
    ----------
    registry:
        Mappings used to detect each device's line format.
    throttle:
        Notifier for change listeners.  Defaults to a 250 ms throttle.
    clock:
        Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        registry: MappingRegistry,
        *,
        throttle: UpdateThrottle | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._registry = registry
        self._throttle = throttle or UpdateThrottle()
        self._clock = clock
        self._devices: dict[str, DeviceTelemetryState] = {}
        self._merges = MergeRegistry()

    def now_ms(self) -> int:
        return self._clock()

    @property
    def registry(self) -> MappingRegistry:
        return self._registry

    @property
    def throttle(self) -> UpdateThrottle:
        return self._throttle

    def add_listener(self, callback: Callable[[frozenset[str]], None]) -> Callable[[], None]:
        """Register a change listener; it receives batches of device keys."""
        return self._throttle.add_listener(callback)

    # -- Ingestion --------------------------------------------------------------

    def ingest(self, message: TelemetryStreamMessage) -> DeviceTelemetryState:
        """Decode, parse, and append one ``telemetry_stream`` frame.

        Never raises for bad payloads: a frame that yields no readings
        still lands in the raw text buffer.
        """
        key = device_key(message.hub_id, message.port_id)
        state = self._devices.get(key)
        if state is None:
            state = DeviceTelemetryState(
                chart_data=DeviceChartData(
                    device_id=key, hub_id=message.hub_id, port_id=message.port_id
                )
            )
            self._devices[key] = state

        result = parse_frame(
            message.data,
            self._registry,
            state.sensor_mapping,
            timestamp=message.timestamp,
        )
        now = self._clock()

        if result.detected_mapping is not None:
            previous = state.sensor_mapping
            if previous is None or previous.id != result.detected_mapping.id:
                logger.info("Detected %s on %s", result.detected_mapping.name, key)
            state.sensor_mapping = result.detected_mapping

        stamp = message.timestamp.astimezone().strftime("%H:%M:%S")
        state.raw_lines.extend(f"[{stamp}] {line}" for line in result.decoded.lines)
        if result.decoded.raw:
            state.hex_lines.extend(hex_dump(result.decoded.raw).splitlines(keepends=True))
        state.last_update = now
        state.frame_count += 1

        if result.parsed and state.sensor_mapping is not None:
            timestamp = to_epoch_ms(message.timestamp)
            chart = state.chart_data
            for parsed in result.parsed:
                for reading in parsed.fields:
                    series = chart.field_named(reading.name)
                    if series is None:
                        series = FieldChartData(
                            field_name=reading.name, unit=reading.unit, color=reading.color
                        )
                        chart.fields.append(series)
                    series.append(ChartPoint(timestamp=timestamp, value=reading.value))
                    series.prune(now, RETENTION_MS)
            chart.sensor_name = state.sensor_mapping.name

        self._throttle.notify(key)
        return state

    # -- Queries ----------------------------------------------------------------

    def get_device_data(self, hub_id: str, port_id: str) -> DeviceTelemetryState | None:
        return self._devices.get(device_key(hub_id, port_id))

    def devices(self) -> dict[str, DeviceTelemetryState]:
        """Return a shallow copy of all device states."""
        return dict(self._devices)

    def get_chart_data(
        self, hub_id: str, port_id: str, window: TimeWindow | str = TimeWindow.ONE_HOUR
    ) -> list[FieldChartData]:
        """Each field's series limited to the last *window*.

        Raises :class:`ValueError` for windows other than the fixed
        ``5m``/``15m``/``30m``/``1h`` set; custom ranges are resolved by
        :func:`hubwatch.telemetry.windows.filter_custom_range`.
        """
        window_ms = TimeWindow(window).milliseconds
        state = self._devices.get(device_key(hub_id, port_id))
        if state is None:
            return []
        now = self._clock()
        return [series.window(now, window_ms) for series in state.chart_data.fields]

    def _device_chart(self, key: str, window_ms: int) -> DeviceChartData | None:
        state = self._devices.get(key)
        if state is None:
            return None
        now = self._clock()
        chart = state.chart_data
        return chart.with_fields([s.window(now, window_ms) for s in chart.fields])

    def clear_device(self, hub_id: str, port_id: str) -> bool:
        """Forget everything about one device.  Returns ``True`` if it existed."""
        key = device_key(hub_id, port_id)
        self._merges.discard(key)
        return self._devices.pop(key, None) is not None

    # -- Merged charts ----------------------------------------------------------

    def merge(self, chart_ids: list[str]) -> MergedChartData:
        """Combine devices (or existing merged charts) into one chart.

        Raises :class:`KeyError` for an unknown device or merged id.
        """
        for chart_id in chart_ids:
            for key in self._merges.expand(chart_id):
                if key not in self._devices:
                    raise KeyError(f"Unknown chart: {chart_id}")
        merged_id = self._merges.merge(chart_ids)
        merged = self.get_merged(merged_id)
        assert merged is not None
        return merged

    def separate(self, merged_id: str) -> list[str]:
        """Dissolve a merged chart, returning member device keys."""
        return self._merges.separate(merged_id)

    def merged_groups(self) -> dict[str, list[str]]:
        return self._merges.groups()

    def get_merged(
        self, merged_id: str, window: TimeWindow | str = TimeWindow.ONE_HOUR
    ) -> MergedChartData | None:
        if merged_id not in self._merges:
            return None
        window_ms = TimeWindow(window).milliseconds
        sources = [
            chart
            for key in self._merges.members(merged_id)
            if (chart := self._device_chart(key, window_ms)) is not None
        ]
        return MergedChartData(id=merged_id, sources=sources)

    def chart_views(self, window: TimeWindow | str = TimeWindow.ONE_HOUR) -> list[ChartView]:
        """Charts to draw: ungrouped devices with data, then merged groups."""
        window_ms = TimeWindow(window).milliseconds
        views: list[ChartView] = []
        for key in self._devices:
            if self._merges.group_of(key) is not None:
                continue
            chart = self._device_chart(key, window_ms)
            if chart is not None and chart.fields:
                views.append(DeviceChartView(chart=chart))
        for merged_id in self._merges.groups():
            merged = self.get_merged(merged_id, window)
            if merged is not None:
                views.append(MergedChartView(chart=merged))
        return views
