"""CLI commands that act on a hub serial port (restart, write, flash, close)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import click

from hubwatch._internal.async_utils import run_async
from hubwatch.cli._client import get_hubs_api
from hubwatch.cli._options import global_options, parse_device
from hubwatch.models.task import CommandType, TaskStatus
from hubwatch.pipeline import pipeline_session
from hubwatch.tasks.commands import CommandService
from hubwatch.tasks.tracker import TaskTracker

if TYPE_CHECKING:
    from hubwatch.cli.main import AppContext
    from hubwatch.models.task import CommandResult, Task

command_group = click.Group("command", help="Send commands to a device port")

_DEVICE = click.argument("device", metavar="HUB:PORT")
_PRIORITY = click.option("--priority", type=int, default=None, help="Queue priority on the hub")
_WAIT = click.option(
    "--wait/--no-wait",
    default=False,
    help="Stay connected until the hub reports the task finished (or it times out)",
)
_TIMEOUT = click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds before an unanswered command is failed (default: HUBWATCH_COMMAND_TIMEOUT)",
)


@command_group.command("restart")
@_DEVICE
@_PRIORITY
@_WAIT
@_TIMEOUT
@global_options
def restart_cmd(
    app_ctx: AppContext, device: str, priority: int | None, wait: bool, timeout: float | None
) -> None:
    """Restart the device on HUB:PORT."""
    run_async(_run_command(app_ctx, device, CommandType.RESTART, priority, wait, timeout))


@command_group.command("write")
@_DEVICE
@click.argument("data")
@click.option("--newline/--no-newline", default=True, help="Append a newline to DATA")
@_PRIORITY
@_WAIT
@_TIMEOUT
@global_options
def write_cmd(
    app_ctx: AppContext,
    device: str,
    data: str,
    newline: bool,
    priority: int | None,
    wait: bool,
    timeout: float | None,
) -> None:
    """Write DATA to the serial port on HUB:PORT."""
    payload = data + "\n" if newline else data
    run_async(
        _run_command(
            app_ctx, device, CommandType.SERIAL_WRITE, priority, wait, timeout, data=payload
        )
    )


@command_group.command("flash")
@_DEVICE
@click.argument("hex_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_PRIORITY
@_WAIT
@_TIMEOUT
@global_options
def flash_cmd(
    app_ctx: AppContext,
    device: str,
    hex_file: Path,
    priority: int | None,
    wait: bool,
    timeout: float | None,
) -> None:
    """Flash HEX_FILE (Intel HEX) to the device on HUB:PORT."""
    content = hex_file.read_text(encoding="ascii")
    run_async(
        _run_command(
            app_ctx,
            device,
            CommandType.FLASH,
            priority,
            wait,
            timeout,
            hex_file_content=content,
        )
    )


@command_group.command("close")
@_DEVICE
@_PRIORITY
@_WAIT
@_TIMEOUT
@global_options
def close_cmd(
    app_ctx: AppContext, device: str, priority: int | None, wait: bool, timeout: float | None
) -> None:
    """Close the hub's serial connection on HUB:PORT."""
    run_async(_run_command(app_ctx, device, CommandType.CLOSE, priority, wait, timeout))


# ---------------------------------------------------------------------------
# Shared implementation
# ---------------------------------------------------------------------------


async def wait_for_task(tracker: TaskTracker, task_id: str) -> Task | None:
    """Block until *task_id* reaches a terminal state (timeouts included)."""
    finished = asyncio.Event()

    def _on_change(task: Task) -> None:
        if task.task_id == task_id and task.status.is_terminal:
            finished.set()

    remove = tracker.add_listener(_on_change)
    try:
        current = tracker.get(task_id)
        if current is not None and not current.status.is_terminal:
            await finished.wait()
    finally:
        remove()
    return tracker.get(task_id)


async def _run_command(
    app_ctx: AppContext,
    device: str,
    command: CommandType,
    priority: int | None,
    wait: bool,
    timeout: float | None,
    *,
    data: str | None = None,
    hex_file_content: str | None = None,
) -> None:
    hub_id, port_id = parse_device(device)
    task: Task | None = None

    if wait:
        async with pipeline_session(app_ctx.settings()) as pipeline:
            result = await pipeline.commands.execute(
                hub_id,
                port_id,
                command,
                data=data,
                hex_file_content=hex_file_content,
                priority=priority,
                timeout=timeout,
            )
            if result.success:
                task = await wait_for_task(pipeline.tracker, result.task_id)
                if task is not None and pipeline.tracker.timed_out(task.task_id):
                    result = result.model_copy(update={"timed_out": True})
    else:
        client, api = await get_hubs_api(app_ctx)
        tracker = TaskTracker()
        try:
            service = CommandService(api, tracker)
            result = await service.execute(
                hub_id,
                port_id,
                command,
                data=data,
                hex_file_content=hex_file_content,
                priority=priority,
                timeout=timeout,
            )
            task = tracker.get(result.task_id) if result.success else None
        finally:
            tracker.cancel_timeouts()
            await client.close()

    _report(app_ctx, command, result, task)


def _report(
    app_ctx: AppContext, command: CommandType, result: CommandResult, task: Task | None
) -> None:
    formatter = app_ctx.formatter
    cmd_name = f"command.{command.value}"
    if formatter.format == "json":
        if result.success:
            formatter.output({"result": result, "task": task}, command=cmd_name)
        else:
            code = "conflict" if result.conflict else "command_failed"
            formatter.output_error(code=code, message=result.error or "", command=cmd_name)
        return

    if not result.success:
        formatter.rich.command_result(False, result.error or "")
        return
    if task is None or not task.status.is_terminal:
        status = task.status.value if task is not None else "pending"
        message = f"{command.label} queued as {result.task_id} ({status})"
        formatter.rich.command_result(True, message)
        return
    ok = task.status == TaskStatus.COMPLETED
    detail = task.error if not ok else f"{command.label} completed"
    formatter.rich.command_result(ok, detail or "")
