"""Merged-chart bookkeeping and the device/merged chart view variant.

Merging is a view-level concern: a merged group is just a list of member
device keys, and its chart data is assembled from the members' current
series at query time.  Device state is never copied or deleted by a
merge, so separating a group restores each member unchanged.

A device key belongs to at most one group.  Merging a device that is
already in another group moves it: the most recent merge wins, and any
group left with fewer than two members is dissolved.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Literal

from hubwatch.telemetry.series import DeviceChartData

logger = logging.getLogger(__name__)

MERGED_PREFIX = "merged-"


def _make_merged_id() -> str:
    return f"{MERGED_PREFIX}{uuid.uuid4().hex[:12]}"


@dataclass(slots=True)
class MergedChartData:
    id: str
    sources: list[DeviceChartData] = field(default_factory=list)
    is_merged: Literal[True] = True


@dataclass(slots=True, frozen=True)
class DeviceChartView:
    """A single device's chart."""

    chart: DeviceChartData
    kind: Literal["device"] = "device"

    @property
    def chart_id(self) -> str:
        return self.chart.device_id


@dataclass(slots=True, frozen=True)
class MergedChartView:
    """Several devices drawn on one chart."""

    chart: MergedChartData
    kind: Literal["merged"] = "merged"

    @property
    def chart_id(self) -> str:
        return self.chart.id


ChartView = DeviceChartView | MergedChartView


def chart_sources(view: ChartView) -> list[DeviceChartData]:
    """Device series drawn by *view*."""
    match view:
        case DeviceChartView(chart=chart):
            return [chart]
        case MergedChartView(chart=chart):
            return list(chart.sources)
    raise TypeError(f"Unknown chart view: {view!r}")


class MergeRegistry:
    """Disjoint groups of device keys keyed by merged chart id."""

    def __init__(self) -> None:
        self._groups: dict[str, list[str]] = {}

    def __contains__(self, merged_id: object) -> bool:
        return merged_id in self._groups

    def groups(self) -> dict[str, list[str]]:
        """Return a copy of ``merged_id -> member keys``."""
        return {gid: list(members) for gid, members in self._groups.items()}

    def members(self, merged_id: str) -> list[str]:
        return list(self._groups.get(merged_id, []))

    def group_of(self, key: str) -> str | None:
        for gid, members in self._groups.items():
            if key in members:
                return gid
        return None

    def expand(self, chart_id: str) -> list[str]:
        """Resolve a chart id to device keys (a device key maps to itself)."""
        if chart_id in self._groups:
            return list(self._groups[chart_id])
        return [chart_id]

    def merge(self, chart_ids: list[str]) -> str:
        """Create a group from *chart_ids* (device keys or merged ids).

        Order is preserved and duplicates collapse.  Named merged groups
        are absorbed; devices taken from groups that were not named are
        moved out of them.  Returns the new merged id.
        """
        keys: list[str] = []
        for chart_id in chart_ids:
            for key in self.expand(chart_id):
                if key not in keys:
                    keys.append(key)
        if len(keys) < 2:
            raise ValueError("A merged chart needs at least two distinct devices")

        for chart_id in chart_ids:
            self._groups.pop(chart_id, None)
        for key in keys:
            self._detach(key)

        merged_id = _make_merged_id()
        self._groups[merged_id] = keys
        logger.info("Merged %d device(s) into %s", len(keys), merged_id)
        return merged_id

    def separate(self, merged_id: str) -> list[str]:
        """Dissolve a group.  Returns its members (empty if unknown)."""
        members = self._groups.pop(merged_id, [])
        if members:
            logger.info("Separated %s into %d device(s)", merged_id, len(members))
        return members

    def discard(self, key: str) -> None:
        """Drop *key* from whichever group holds it."""
        self._detach(key)

    def _detach(self, key: str) -> None:
        gid = self.group_of(key)
        if gid is None:
            return
        remaining = [k for k in self._groups[gid] if k != key]
        if len(remaining) < 2:
            del self._groups[gid]
            logger.debug("Dissolved %s after %s left it", gid, key)
        else:
            self._groups[gid] = remaining
