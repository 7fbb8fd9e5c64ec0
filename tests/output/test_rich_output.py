from __future__ import annotations

from io import StringIO

from rich.console import Console

from hubwatch.models.task import Task, TaskStatus
from hubwatch.output.formatter import OutputFormatter
from hubwatch.output.rich_output import RichOutput
from hubwatch.protocol.mappings import MappingRegistry
from hubwatch.telemetry.series import (
    ChartPoint,
    DeviceChartData,
    DeviceTelemetryState,
    FieldChartData,
)


def _make_console() -> tuple[Console, StringIO]:
    """Return a ``(Console, buffer)`` pair for capturing Rich output."""
    buf = StringIO()
    console = Console(file=buf, width=120)
    return console, buf


class TestHubs:
    def test_hub_list_accepts_either_id_key(self) -> None:
        console, buf = _make_console()
        RichOutput(console).hub_list(
            [
                {"hub_id": "hub-1", "name": "Bench", "status": "online"},
                {"hubId": "hub-2", "status": "offline"},
            ]
        )
        output = buf.getvalue()
        assert "hub-1" in output
        assert "Bench" in output
        assert "hub-2" in output
        assert "offline" in output

    def test_port_list(self) -> None:
        console, buf = _make_console()
        RichOutput(console).port_list(
            "hub-1", [{"port_id": "ttyUSB0", "description": "CP2102", "connected": True}]
        )
        output = buf.getvalue()
        assert "Ports on hub-1" in output
        assert "ttyUSB0" in output
        assert "yes" in output


class TestSchemas:
    def test_marks_user_schemas(self) -> None:
        console, buf = _make_console()
        registry = MappingRegistry.with_builtins()
        RichOutput(console).schema_list(list(registry), user_ids={"dht22"})
        output = buf.getvalue()
        assert "dht22" in output
        assert "user" in output
        assert "built-in" in output


class TestDevices:
    def test_device_summary_shows_latest(self) -> None:
        console, buf = _make_console()
        state = DeviceTelemetryState(
            chart_data=DeviceChartData(
                device_id="hub-1:a",
                hub_id="hub-1",
                port_id="a",
                sensor_name="DHT22",
                fields=[
                    FieldChartData(
                        field_name="temperature",
                        unit="C",
                        color="#f00",
                        data=[
                            ChartPoint(timestamp=1, value=20.0),
                            ChartPoint(timestamp=2, value=21.5),
                        ],
                    )
                ],
            ),
            frame_count=7,
        )
        RichOutput(console).device_summary({"hub-1:a": state})
        output = buf.getvalue()
        assert "DHT22" in output
        assert "temperature=21.5C" in output

    def test_raw_lines_are_not_markup(self) -> None:
        console, buf = _make_console()
        RichOutput(console).raw_lines(["[bold]not markup[/bold]"])
        assert "[bold]not markup[/bold]" in buf.getvalue()


class TestTasks:
    def test_task_table(self) -> None:
        console, buf = _make_console()
        task = Task(
            task_id="t1",
            command_type="restart",
            port_id="a",
            hub_id="hub-1",
            status=TaskStatus.FAILED,
            error="Command timeout - no response received",
        )
        RichOutput(console).task_table([task])
        output = buf.getvalue()
        assert "hub-1:a" in output
        assert "failed" in output

    def test_command_result(self) -> None:
        console, buf = _make_console()
        ro = RichOutput(console)
        ro.command_result(True, "task t1")
        ro.command_result(False)
        output = buf.getvalue()
        assert "OK" in output
        assert "FAILED" in output


class TestOutputFormatter:
    def test_non_tty_defaults_to_json(self) -> None:
        buf = StringIO()
        formatter = OutputFormatter(stream=buf)
        assert formatter.format == "json"
        formatter.output({"a": 1}, command="x")
        assert '"ok": true' in buf.getvalue()

    def test_forced_rich(self) -> None:
        buf = StringIO()
        formatter = OutputFormatter(stream=buf, force_format="rich")
        formatter.output_error(code="x", message="went wrong", command="x")
        assert "went wrong" in buf.getvalue()

    def test_events_only_in_json(self) -> None:
        buf = StringIO()
        OutputFormatter(stream=buf, force_format="rich").output_event("e", {"a": 1})
        assert buf.getvalue() == ""
