"""CLI commands for managing sensor schemas (line-format mappings)."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import click

from hubwatch.cli._client import build_registry, get_schema_store
from hubwatch.cli._options import global_options
from hubwatch.models.sensor import SensorField, SensorFormat, SensorMapping
from hubwatch.protocol.parser import parse_line
from hubwatch.protocol.schemas import generate_pattern, generate_print_statement

if TYPE_CHECKING:
    from hubwatch.cli.main import AppContext

schema_group = click.Group("schema", help="Sensor schema management")


def _parse_field(spec: str, capture_group: int) -> SensorField:
    """``name[:unit[:color]]`` → :class:`SensorField`."""
    name, _, rest = spec.partition(":")
    unit, _, color = rest.partition(":")
    if not name:
        raise click.BadParameter(f"field needs a name: {spec!r}")
    kwargs: dict[str, object] = {"name": name, "unit": unit, "capture_group": capture_group}
    if color:
        kwargs["color"] = color
    return SensorField.model_validate(kwargs)


@schema_group.command("list")
@global_options
def list_cmd(app_ctx: AppContext) -> None:
    """List built-in and saved sensor schemas."""
    formatter = app_ctx.formatter
    settings = app_ctx.settings()
    user_ids = {m.id for m in get_schema_store(settings).load()}
    mappings = list(build_registry(settings))

    if formatter.format == "json":
        formatter.output(mappings, command="schema.list")
    else:
        formatter.rich.schema_list(mappings, user_ids=user_ids)


@schema_group.command("add")
@click.argument("schema_id")
@click.option("--name", default=None, help="Display name (default: SCHEMA_ID)")
@click.option("--description", default="", help="Free-form description")
@click.option(
    "--format",
    "fmt",
    type=click.Choice([f.value for f in SensorFormat]),
    default=SensorFormat.KEY_VALUE.value,
    show_default=True,
    help="Line format emitted by the device",
)
@click.option(
    "--field",
    "fields",
    multiple=True,
    required=True,
    help="Field as NAME[:UNIT[:COLOR]]; repeat in capture-group order",
)
@click.option("--pattern", default=None, help="Detection regex (default: generated)")
@global_options
def add_cmd(
    app_ctx: AppContext,
    schema_id: str,
    name: str | None,
    description: str,
    fmt: str,
    fields: tuple[str, ...],
    pattern: str | None,
) -> None:
    """Save a custom schema so its lines are detected and charted."""
    formatter = app_ctx.formatter
    sensor_fields = [_parse_field(spec, i + 1) for i, spec in enumerate(fields)]
    if pattern is None:
        pattern = generate_pattern(fmt, sensor_fields)
    try:
        re.compile(pattern)
    except re.error as exc:
        raise click.BadParameter(f"invalid pattern: {exc}", param_hint="--pattern") from exc

    mapping = SensorMapping(
        id=schema_id,
        name=name or schema_id,
        description=description,
        format=SensorFormat(fmt),
        pattern=pattern,
        fields=sensor_fields,
    )
    get_schema_store(app_ctx.settings()).add(mapping)
    statement = generate_print_statement(mapping.format, mapping.pattern, mapping.fields)

    if formatter.format == "json":
        formatter.output({"schema": mapping, "print_statement": statement}, command="schema.add")
    else:
        formatter.rich.command_result(True, f"Saved schema {schema_id}")
        formatter.rich.info(f"Pattern: [cyan]{mapping.pattern}[/cyan]")
        formatter.rich.info("Arduino:")
        formatter.rich.info(f"  {statement}")


@schema_group.command("remove")
@click.argument("schema_id")
@global_options
def remove_cmd(app_ctx: AppContext, schema_id: str) -> None:
    """Delete a saved schema."""
    formatter = app_ctx.formatter
    removed = get_schema_store(app_ctx.settings()).remove(schema_id)
    if formatter.format == "json":
        if removed:
            formatter.output({"removed": schema_id}, command="schema.remove")
        else:
            formatter.output_error(
                code="not_found", message=f"No saved schema {schema_id}", command="schema.remove"
            )
        return
    formatter.rich.command_result(
        removed, f"Removed {schema_id}" if removed else f"No saved schema {schema_id}"
    )


@schema_group.command("detect")
@click.argument("line")
@global_options
def detect_cmd(app_ctx: AppContext, line: str) -> None:
    """Show which schema matches LINE and what it parses to."""
    formatter = app_ctx.formatter
    registry = build_registry(app_ctx.settings())
    mapping = registry.detect(line)
    parsed = parse_line(line, mapping) if mapping is not None else None

    if formatter.format == "json":
        formatter.output({"mapping": mapping, "parsed": parsed}, command="schema.detect")
        return
    if mapping is None:
        formatter.rich.info("[yellow]No schema matches this line.[/yellow]")
        return
    formatter.rich.info(f"Detected [cyan]{mapping.name}[/cyan] ({mapping.id})")
    if parsed is None:
        formatter.rich.info("[dim]Pattern matched but no numeric fields were read.[/dim]")
    else:
        formatter.rich.readings(mapping.name, parsed.fields)
