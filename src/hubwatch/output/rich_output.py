from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from hubwatch.models.sensor import SensorMapping, SensorReading
    from hubwatch.models.task import Task
    from hubwatch.telemetry.series import DeviceTelemetryState

_STATUS_STYLES = {
    "pending": "yellow",
    "running": "cyan",
    "completed": "green",
    "failed": "red",
}


class RichOutput:
    """Rich-based terminal output helpers for *hubwatch*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Hubs and ports
    # ------------------------------------------------------------------

    def hub_list(self, hubs: list[dict[str, Any]]) -> None:
        """Print a table of hubs known to the server."""
        table = Table(title="Hubs")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Status")

        for hub in hubs:
            status = str(hub.get("status", ""))
            style = "green" if status in ("online", "connected", "active") else "yellow"
            table.add_row(
                str(hub.get("hub_id") or hub.get("hubId") or hub.get("id") or ""),
                str(hub.get("name") or ""),
                f"[{style}]{status}[/{style}]" if status else "",
            )

        self._con.print(table)

    def port_list(self, hub_id: str, ports: list[dict[str, Any]]) -> None:
        """Print the serial ports attached to one hub."""
        table = Table(title=f"Ports on {hub_id}")
        table.add_column("Port", style="cyan")
        table.add_column("Description")
        table.add_column("Connected")

        for port in ports:
            connected = port.get("connected")
            table.add_row(
                str(port.get("port_id") or port.get("portId") or port.get("port") or ""),
                str(port.get("description") or ""),
                "" if connected is None else ("yes" if connected else "no"),
            )

        self._con.print(table)

    # ------------------------------------------------------------------
    # Sensor schemas
    # ------------------------------------------------------------------

    def schema_list(self, mappings: list[SensorMapping], *, user_ids: set[str]) -> None:
        """Print built-in and user sensor schemas."""
        table = Table(title="Sensor Schemas")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Format")
        table.add_column("Fields")
        table.add_column("Source", style="dim")

        for m in mappings:
            fields = ", ".join(f"{f.name} ({f.unit})" if f.unit else f.name for f in m.fields)
            table.add_row(
                m.id,
                m.name,
                m.format.value,
                fields,
                "user" if m.id in user_ids else "built-in",
            )

        self._con.print(table)

    def readings(self, title: str, readings: list[SensorReading]) -> None:
        """Print parsed readings for one line or device."""
        table = Table(title=title)
        table.add_column("Field", style="bold")
        table.add_column("Value", justify="right")
        table.add_column("Unit")

        for r in readings:
            table.add_row(f"[{r.color}]{r.name}[/{r.color}]", f"{r.value:g}", r.unit)

        self._con.print(table)

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def device_summary(self, states: dict[str, DeviceTelemetryState]) -> None:
        """Print latest value per field for every device with data."""
        table = Table(title="Devices")
        table.add_column("Device", style="cyan")
        table.add_column("Sensor")
        table.add_column("Frames", justify="right")
        table.add_column("Latest")

        for key, state in states.items():
            latest = []
            for series in state.chart_data.fields:
                if series.data:
                    value = f"{series.data[-1].value:g}"
                    latest.append(f"{series.field_name}={value}{series.unit}")
            table.add_row(
                key,
                state.chart_data.sensor_name,
                str(state.frame_count),
                "  ".join(latest),
            )

        self._con.print(table)

    def raw_lines(self, lines: list[str]) -> None:
        for line in lines:
            self._con.print(line, markup=False, highlight=False)

    def hex_dump(self, text: str) -> None:
        self._con.print(Panel(text, title="Hex", expand=False), markup=False, highlight=False)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def task_table(self, tasks: list[Task]) -> None:
        """Print tracked command tasks with coloured status."""
        table = Table(title="Tasks")
        table.add_column("Task", style="cyan")
        table.add_column("Command")
        table.add_column("Port")
        table.add_column("Status")
        table.add_column("Error")

        for t in tasks:
            style = _STATUS_STYLES.get(t.status.value, "white")
            table.add_row(
                t.task_id,
                t.command_type,
                f"{t.hub_id}:{t.port_id}",
                f"[{style}]{t.status.value}[/{style}]",
                t.error or "",
            )

        self._con.print(table)

    # ------------------------------------------------------------------
    # Command result helpers
    # ------------------------------------------------------------------

    def command_result(self, success: bool, message: str = "") -> None:
        """Print a coloured OK / FAILED indicator."""
        text = "[green]OK[/green]" if success else "[red]FAILED[/red]"
        if message:
            text += f"  {message}"
        self._con.print(text)

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
