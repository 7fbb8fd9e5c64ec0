"""Device command dispatch with per-port exclusivity.

Every command goes through :meth:`CommandService.execute`, which refuses
to touch the network while the port already has a command in flight,
records the returned task in the :class:`TaskTracker`, and arms its
timeout.  Callers always get a :class:`CommandResult` back.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hubwatch.api.errors import HubwatchError
from hubwatch.models.task import CommandResult, CommandType, Task, TaskStatus

if TYPE_CHECKING:
    from hubwatch.api.hubs import HubsAPI
    from hubwatch.models.task import TaskStatusResponse
    from hubwatch.tasks.tracker import TaskTracker

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

CONFLICT_ERROR = "Command already in progress for this device"


class CommandService:
    """Send restart / serial write / flash / close commands to hub ports."""

    def __init__(
        self,
        api: HubsAPI,
        tracker: TaskTracker,
        *,
        default_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._api = api
        self._tracker = tracker
        self._default_timeout = default_timeout
        self._submitting: set[str] = set()

    @property
    def tracker(self) -> TaskTracker:
        return self._tracker

    async def execute(
        self,
        hub_id: str,
        port_id: str,
        command_type: CommandType | str,
        *,
        data: str | None = None,
        hex_file_content: str | None = None,
        priority: int | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Dispatch one command and start tracking it."""
        command = CommandType(command_type)

        existing = self._tracker.active_task_for(port_id)
        if existing is not None or port_id in self._submitting:
            logger.warning(
                "%s refused on %s:%s: %s", command.label, hub_id, port_id, CONFLICT_ERROR
            )
            return CommandResult(
                success=False,
                task_id=existing.task_id if existing is not None else "",
                error=CONFLICT_ERROR,
                conflict=True,
            )

        if command == CommandType.SERIAL_WRITE and data is None:
            return CommandResult(success=False, error="Serial write requires data")
        if command == CommandType.FLASH and not hex_file_content:
            return CommandResult(success=False, error="Flash requires hex file content")

        self._submitting.add(port_id)
        try:
            response = await self._send(command, hub_id, port_id, data, hex_file_content, priority)
        except HubwatchError as exc:
            logger.error("Failed to send %s to %s:%s: %s", command.label, hub_id, port_id, exc)
            return CommandResult(success=False, error=str(exc))
        finally:
            self._submitting.discard(port_id)

        try:
            status = TaskStatus(response.status)
        except ValueError:
            status = TaskStatus.PENDING
        self._tracker.add(
            Task(
                task_id=response.task_id,
                command_type=response.command_type,
                status=status,
                priority=response.priority,
                port_id=port_id,
                hub_id=hub_id,
                created_at=response.created_at,
            )
        )
        self._tracker.schedule_timeout(
            response.task_id, self._default_timeout if timeout is None else timeout
        )
        logger.info("%s command sent to %s:%s", command.label, hub_id, port_id)
        return CommandResult(success=True, task_id=response.task_id, response=response)

    async def _send(
        self,
        command: CommandType,
        hub_id: str,
        port_id: str,
        data: str | None,
        hex_file_content: str | None,
        priority: int | None,
    ) -> TaskStatusResponse:
        match command:
            case CommandType.RESTART:
                return await self._api.send_restart_command(hub_id, port_id, priority)
            case CommandType.SERIAL_WRITE:
                return await self._api.send_serial_write(hub_id, port_id, data or "", priority)
            case CommandType.FLASH:
                return await self._api.send_flash_command(
                    hub_id, port_id, hex_file_content or "", priority
                )
            case CommandType.CLOSE:
                return await self._api.close_connection(hub_id, port_id, priority)
        raise ValueError(f"Unsupported command type: {command}")

    # -- Convenience wrappers ---------------------------------------------------

    async def restart(
        self, hub_id: str, port_id: str, *, priority: int | None = None
    ) -> CommandResult:
        return await self.execute(hub_id, port_id, CommandType.RESTART, priority=priority)

    async def serial_write(
        self, hub_id: str, port_id: str, data: str, *, priority: int | None = None
    ) -> CommandResult:
        return await self.execute(
            hub_id, port_id, CommandType.SERIAL_WRITE, data=data, priority=priority
        )

    async def flash(
        self, hub_id: str, port_id: str, hex_file_content: str, *, priority: int | None = None
    ) -> CommandResult:
        return await self.execute(
            hub_id,
            port_id,
            CommandType.FLASH,
            hex_file_content=hex_file_content,
            priority=priority,
        )

    async def close(
        self, hub_id: str, port_id: str, *, priority: int | None = None
    ) -> CommandResult:
        return await self.execute(hub_id, port_id, CommandType.CLOSE, priority=priority)
