"""Custom time-range resolution on top of the store's fixed windows.

The store only knows fixed windows.  A custom ``start..end`` range is
served by querying the smallest fixed window that still reaches back to
``start`` and then trimming the points to the explicit bounds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hubwatch.telemetry.series import TimeWindow, to_epoch_ms

if TYPE_CHECKING:
    from datetime import datetime

    from hubwatch.telemetry.series import FieldChartData
    from hubwatch.telemetry.store import TelemetryStore


def enclosing_window(start_ms: int, now: int) -> TimeWindow:
    """Smallest fixed window covering everything from *start_ms* to *now*.

    Ranges reaching back further than an hour get :attr:`TimeWindow.ONE_HOUR`,
    which is all the store retains anyway.
    """
    span = now - start_ms
    for window in TimeWindow:
        if span < window.milliseconds:
            return window
    return TimeWindow.ONE_HOUR


def filter_custom_range(
    store: TelemetryStore,
    hub_id: str,
    port_id: str,
    start: datetime,
    end: datetime,
) -> list[FieldChartData]:
    """Return each field's points with ``start <= timestamp <= end``."""
    start_ms = to_epoch_ms(start)
    end_ms = to_epoch_ms(end)
    if end_ms < start_ms:
        raise ValueError("Custom range end must not precede its start")
    window = enclosing_window(start_ms, store.now_ms())
    return [
        series.between(start_ms, end_ms)
        for series in store.get_chart_data(hub_id, port_id, window)
    ]
