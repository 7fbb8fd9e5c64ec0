"""CLI entry-point: root Click group, shared context and error reporting."""

from __future__ import annotations

import dataclasses
import logging

import click

from hubwatch.api.errors import AuthError, ConfigError, HubwatchError, NetworkError
from hubwatch.cli._options import FORMAT_CHOICE
from hubwatch.models.config import AppSettings
from hubwatch.output.formatter import OutputFormatter

logger = logging.getLogger(__name__)

# (error type, envelope code, hint shown after the message)
_KNOWN_ERRORS: tuple[tuple[type[HubwatchError], str, str], ...] = (
    (AuthError, "auth_failed", "Set HUBWATCH_ACCESS_TOKEN or a username and password."),
    (NetworkError, "network_error", "Is the hub server reachable? See --api-url."),
    (ConfigError, "config_error", ""),
)


@dataclasses.dataclass
class AppContext:
    """State shared by every command through ``@click.pass_obj``."""

    api_url: str | None = None
    token: str | None = None
    output_format: str | None = None
    quiet: bool = False
    verbose: bool = False
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        if self._formatter is None:
            self._formatter = OutputFormatter(
                force_format="quiet" if self.quiet else self.output_format
            )
        return self._formatter

    def apply_overrides(
        self, *, api_url: str | None, output_format: str | None, quiet: bool
    ) -> None:
        """Fold leaf-command options into the context; a changed format rebuilds the formatter."""
        if api_url is not None:
            self.api_url = api_url
        if output_format is not None or quiet:
            self.output_format = output_format or self.output_format
            self.quiet = self.quiet or quiet
            self._formatter = None

    def settings(self) -> AppSettings:
        """``HUBWATCH_*`` settings with ``--api-url``/``--token`` applied on top."""
        settings = AppSettings()
        update = {
            key: value
            for key, value in (("api_url", self.api_url), ("access_token", self.token))
            if value
        }
        return settings.model_copy(update=update) if update else settings


def configure_logging(verbose: bool) -> None:
    """Log to stderr through Rich so JSON on stdout stays parseable."""
    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )
    if not verbose:
        for noisy in ("httpx", "httpcore", "websockets"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


@click.group()
@click.option("--api-url", default=None, envvar="HUBWATCH_API_URL", help="Hub server base URL")
@click.option("--token", default=None, help="Access token (overrides HUBWATCH_ACCESS_TOKEN)")
@click.option(
    "--format",
    "output_format",
    type=FORMAT_CHOICE,
    default=None,
    help="Output format (default: rich on a terminal, json otherwise)",
)
@click.option("--quiet", is_flag=True, default=False, help="Suppress normal output")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    api_url: str | None,
    token: str | None,
    output_format: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """Watch and control serial devices attached to remote hubs."""
    configure_logging(verbose)
    ctx.obj = AppContext(
        api_url=api_url, token=token, output_format=output_format, quiet=quiet, verbose=verbose
    )


def _register_commands() -> None:
    from hubwatch.cli.command import command_group
    from hubwatch.cli.decode import decode_cmd
    from hubwatch.cli.hubs import hubs_group
    from hubwatch.cli.schema import schema_group
    from hubwatch.cli.watch import watch_cmd

    for command in (command_group, decode_cmd, hubs_group, schema_group, watch_cmd):
        cli.add_command(command)


_register_commands()


def _current_app_ctx() -> AppContext | None:
    ctx = click.get_current_context(silent=True)
    return ctx.find_object(AppContext) if ctx is not None else None


def _current_command_name() -> str:
    ctx = click.get_current_context(silent=True)
    if ctx is None:
        return "unknown"
    # "cli hubs list" -> "hubs.list"
    return ".".join(ctx.command_path.split()[1:]) or "unknown"


def report_error(exc: Exception, formatter: OutputFormatter, command: str) -> None:
    """Print *exc* as a JSON error envelope or a Rich message plus hint."""
    code, hint = type(exc).__name__, ""
    for error_type, known_code, known_hint in _KNOWN_ERRORS:
        if isinstance(exc, error_type):
            code, hint = known_code, known_hint
            break
    message = str(exc) or code

    if formatter.format == "json":
        formatter.output_error(code=code, message=f"{message} {hint}".strip(), command=command)
        return
    formatter.rich.error(message)
    if hint:
        formatter.rich.info(f"[dim]{hint}[/dim]")


def main(argv: list[str] | None = None) -> None:
    """Console-script entry point; turns uncaught errors into exit status 1."""
    try:
        cli(args=argv, standalone_mode=False)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as exc:
        app_ctx = _current_app_ctx()
        formatter = app_ctx.formatter if app_ctx is not None else OutputFormatter()
        if not isinstance(exc, HubwatchError):
            logger.debug("Unhandled error", exc_info=exc)
        report_error(exc, formatter, _current_command_name())
        raise SystemExit(1) from exc
