"""Tests for merged-chart bookkeeping."""

from __future__ import annotations

import pytest

from hubwatch.telemetry.merge import (
    DeviceChartView,
    MergedChartData,
    MergedChartView,
    MergeRegistry,
    chart_sources,
)
from hubwatch.telemetry.series import DeviceChartData


def _chart(key: str) -> DeviceChartData:
    hub, port = key.split(":")
    return DeviceChartData(device_id=key, hub_id=hub, port_id=port)


class TestMergeRegistry:
    def test_merge_creates_group(self) -> None:
        reg = MergeRegistry()
        gid = reg.merge(["h:a", "h:b"])
        assert gid.startswith("merged-")
        assert reg.members(gid) == ["h:a", "h:b"]
        assert reg.group_of("h:a") == gid
        assert gid in reg

    def test_duplicates_collapse(self) -> None:
        reg = MergeRegistry()
        gid = reg.merge(["h:a", "h:b", "h:a"])
        assert reg.members(gid) == ["h:a", "h:b"]

    def test_needs_two_distinct_keys(self) -> None:
        with pytest.raises(ValueError):
            MergeRegistry().merge(["h:a"])

    def test_most_recent_merge_wins(self) -> None:
        reg = MergeRegistry()
        first = reg.merge(["h:a", "h:b", "h:c"])
        second = reg.merge(["h:a", "h:d"])
        assert reg.group_of("h:a") == second
        assert reg.members(first) == ["h:b", "h:c"]

    def test_group_left_with_one_member_dissolves(self) -> None:
        reg = MergeRegistry()
        first = reg.merge(["h:a", "h:b"])
        reg.merge(["h:b", "h:c"])
        assert first not in reg
        assert reg.group_of("h:a") is None

    def test_merging_a_group_absorbs_it(self) -> None:
        reg = MergeRegistry()
        first = reg.merge(["h:a", "h:b"])
        second = reg.merge([first, "h:c"])
        assert first not in reg
        assert reg.members(second) == ["h:a", "h:b", "h:c"]

    def test_keys_belong_to_one_group(self) -> None:
        reg = MergeRegistry()
        reg.merge(["h:a", "h:b"])
        reg.merge(["h:c", "h:d"])
        reg.merge(["h:b", "h:c"])
        seen: list[str] = []
        for members in reg.groups().values():
            seen.extend(members)
        assert len(seen) == len(set(seen))

    def test_separate(self) -> None:
        reg = MergeRegistry()
        gid = reg.merge(["h:a", "h:b"])
        assert reg.separate(gid) == ["h:a", "h:b"]
        assert reg.groups() == {}
        assert reg.separate(gid) == []

    def test_expand(self) -> None:
        reg = MergeRegistry()
        gid = reg.merge(["h:a", "h:b"])
        assert reg.expand(gid) == ["h:a", "h:b"]
        assert reg.expand("h:z") == ["h:z"]


class TestChartViews:
    def test_device_view(self) -> None:
        view = DeviceChartView(chart=_chart("h:a"))
        assert view.kind == "device"
        assert view.chart_id == "h:a"
        assert [c.device_id for c in chart_sources(view)] == ["h:a"]

    def test_merged_view(self) -> None:
        merged = MergedChartData(id="merged-1", sources=[_chart("h:a"), _chart("h:b")])
        view = MergedChartView(chart=merged)
        assert view.kind == "merged"
        assert view.chart_id == "merged-1"
        assert [c.device_id for c in chart_sources(view)] == ["h:a", "h:b"]

    def test_unknown_view(self) -> None:
        with pytest.raises(TypeError):
            chart_sources("nope")  # type: ignore[arg-type]
