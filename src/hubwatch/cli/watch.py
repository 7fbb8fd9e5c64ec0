"""``hubwatch watch`` — stream live telemetry from one or more device ports."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import click

from hubwatch._internal.async_utils import run_async
from hubwatch.cli._options import global_options, parse_device
from hubwatch.models.messages import TelemetryStreamMessage, device_key
from hubwatch.pipeline import pipeline_session
from hubwatch.protocol.decoder import decode_frame
from hubwatch.telemetry.series import TimeWindow

if TYPE_CHECKING:
    from hubwatch.cli.main import AppContext
    from hubwatch.models.messages import StreamMessage
    from hubwatch.pipeline import TelemetryPipeline


@click.command("watch")
@click.argument("devices", nargs=-1, required=True, metavar="HUB:PORT...")
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: until Ctrl+C)",
)
@click.option(
    "--window",
    type=click.Choice([w.value for w in TimeWindow]),
    default=TimeWindow.FIVE_MINUTES.value,
    show_default=True,
    help="Window for the closing chart summary",
)
@click.option("--raw", is_flag=True, help="Also print every decoded serial line")
@global_options
def watch_cmd(
    app_ctx: AppContext,
    devices: tuple[str, ...],
    duration: float | None,
    window: str,
    raw: bool,
) -> None:
    """Subscribe to HUB:PORT streams and print readings as they arrive."""
    pairs = [parse_device(d) for d in devices]
    run_async(_cmd_watch(app_ctx, pairs, duration, TimeWindow(window), raw))


def latest_readings(pipeline: TelemetryPipeline, key: str) -> dict[str, Any] | None:
    """Most recent value of every field for one device, or ``None``."""
    state = pipeline.store.devices().get(key)
    if state is None:
        return None
    values = {s.field_name: s.data[-1].value for s in state.chart_data.fields if s.data}
    return {
        "device": key,
        "sensor": state.chart_data.sensor_name,
        "frames": state.frame_count,
        "fields": values,
    }


async def _cmd_watch(
    app_ctx: AppContext,
    pairs: list[tuple[str, str]],
    duration: float | None,
    window: TimeWindow,
    raw: bool,
) -> None:
    formatter = app_ctx.formatter
    is_json = formatter.format == "json"

    async with pipeline_session(app_ctx.settings()) as pipeline:

        def _on_update(keys: frozenset[str]) -> None:
            for key in sorted(keys):
                snapshot = latest_readings(pipeline, key)
                if snapshot is None:
                    continue
                if is_json:
                    formatter.output_event("telemetry", snapshot)
                else:
                    text = "  ".join(
                        f"{name}={value:g}" for name, value in snapshot["fields"].items()
                    )
                    formatter.rich.info(
                        f"[cyan]{key}[/cyan] [dim]{snapshot['sensor']}[/dim]  {text}"
                    )

        def _on_raw(message: StreamMessage) -> None:
            if not isinstance(message, TelemetryStreamMessage):
                return
            key = device_key(message.hub_id, message.port_id)
            for line in decode_frame(message.data).lines:
                if is_json:
                    formatter.output_event("line", {"device": key, "line": line})
                else:
                    formatter.rich.raw_lines([f"{key}> {line}"])

        remove_listener = pipeline.store.add_listener(_on_update)
        remove_raw = pipeline.connection.on_message(_on_raw) if raw else None
        try:
            for hub_id, port_id in pairs:
                await pipeline.subscribe(hub_id, port_id)
            if not is_json:
                formatter.rich.info(
                    f"Watching {len(pairs)} device(s). [dim]Press Ctrl+C to stop.[/dim]"
                )
            if duration is not None:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
        finally:
            remove_listener()
            if remove_raw is not None:
                remove_raw()

        if is_json:
            formatter.output(pipeline.store.chart_views(window), command="watch")
        else:
            formatter.rich.device_summary(pipeline.store.devices())
