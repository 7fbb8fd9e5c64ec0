"""CLI commands for browsing hubs and their serial ports."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from hubwatch._internal.async_utils import run_async
from hubwatch.cli._client import get_hubs_api
from hubwatch.cli._options import global_options

if TYPE_CHECKING:
    from hubwatch.cli.main import AppContext

hubs_group = click.Group("hubs", help="Hub and port discovery")


@hubs_group.command("list")
@global_options
def list_cmd(app_ctx: AppContext) -> None:
    """List hubs registered with the server."""
    run_async(_cmd_list(app_ctx))


async def _cmd_list(app_ctx: AppContext) -> None:
    formatter = app_ctx.formatter
    client, api = await get_hubs_api(app_ctx)
    try:
        hubs = await api.list_hubs()
    finally:
        await client.close()

    if formatter.format == "json":
        formatter.output(hubs, command="hubs.list")
    elif not hubs:
        formatter.rich.info("[dim]No hubs registered.[/dim]")
    else:
        formatter.rich.hub_list(hubs)


@hubs_group.command("ports")
@click.argument("hub_id")
@global_options
def ports_cmd(app_ctx: AppContext, hub_id: str) -> None:
    """List serial ports on HUB_ID."""
    run_async(_cmd_ports(app_ctx, hub_id))


async def _cmd_ports(app_ctx: AppContext, hub_id: str) -> None:
    formatter = app_ctx.formatter
    client, api = await get_hubs_api(app_ctx)
    try:
        ports = await api.list_ports(hub_id)
    finally:
        await client.close()

    if formatter.format == "json":
        formatter.output(ports, command="hubs.ports")
    else:
        formatter.rich.port_list(hub_id, ports)
