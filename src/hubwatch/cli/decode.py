"""``hubwatch decode`` — run one base64 telemetry frame through the parser offline."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

import click

from hubwatch.cli._client import build_registry
from hubwatch.cli._options import global_options
from hubwatch.protocol.decoder import hex_dump
from hubwatch.protocol.parser import parse_frame

if TYPE_CHECKING:
    from hubwatch.cli.main import AppContext


@click.command("decode")
@click.argument("data")
@click.option("--text", "is_text", is_flag=True, help="DATA is plain text rather than base64")
@click.option("--hex", "show_hex", is_flag=True, help="Include a hex dump of the frame")
@global_options
def decode_cmd(app_ctx: AppContext, data: str, is_text: bool, show_hex: bool) -> None:
    """Decode DATA, detect its sensor schema, and print parsed readings."""
    formatter = app_ctx.formatter
    if is_text:
        raw_bytes = data.encode("utf-8").decode("unicode_escape").encode("latin-1")
        data = base64.b64encode(raw_bytes).decode("ascii")

    result = parse_frame(data, build_registry(app_ctx.settings()))
    dump = hex_dump(result.decoded.raw) if show_hex else None

    if formatter.format == "json":
        payload: dict[str, object] = {
            "lines": result.decoded.lines,
            "mapping": result.detected_mapping,
            "parsed": result.parsed,
        }
        if dump is not None:
            payload["hex"] = dump
        formatter.output(payload, command="decode")
        return

    formatter.rich.raw_lines(result.decoded.lines)
    if dump:
        formatter.rich.hex_dump(dump.rstrip("\n"))
    if result.detected_mapping is None:
        formatter.rich.info("[yellow]No schema detected.[/yellow]")
        return
    for parsed in result.parsed:
        formatter.rich.readings(parsed.sensor_name, parsed.fields)
