"""Option helpers shared by leaf commands."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any

import click

if TYPE_CHECKING:
    from collections.abc import Callable

    from hubwatch.cli.main import AppContext

FORMAT_CHOICE = click.Choice(["rich", "json", "quiet"])


def global_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Accept ``--format``/``--quiet``/``--api-url`` after the subcommand too.

    ``hubwatch hubs list --format json`` behaves like
    ``hubwatch --format json hubs list``; a value given on the leaf wins.
    """

    @click.option("--api-url", "local_api_url", default=None, help="Hub server base URL")
    @click.option("--format", "local_format", type=FORMAT_CHOICE, default=None)
    @click.option("--quiet", "local_quiet", is_flag=True, default=False)
    @click.pass_obj
    @functools.wraps(f)
    def wrapper(
        app_ctx: AppContext,
        /,
        local_api_url: str | None,
        local_format: str | None,
        local_quiet: bool,
        **kwargs: Any,
    ) -> Any:
        app_ctx.apply_overrides(
            api_url=local_api_url, output_format=local_format, quiet=local_quiet
        )
        return f(app_ctx, **kwargs)

    return wrapper


def parse_device(value: str) -> tuple[str, str]:
    """Split ``HUB:PORT`` on the first colon; ports such as ``/dev/tty:x`` keep theirs."""
    hub_id, sep, port_id = value.partition(":")
    if not (sep and hub_id and port_id):
        raise click.BadParameter(f"expected HUB:PORT, got {value!r}")
    return hub_id, port_id
