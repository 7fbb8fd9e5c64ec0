"""Hub and device-command endpoints built on top of HubClient."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from hubwatch.api.errors import ApiError
from hubwatch.models.task import CommandType, TaskStatusResponse

if TYPE_CHECKING:
    from hubwatch.api.client import HubClient


def _expect_object(data: Any, path: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ApiError(f"Unexpected response from {path}: expected an object")
    return data


def _task_response(data: Any, path: str) -> TaskStatusResponse:
    try:
        return TaskStatusResponse.model_validate(_expect_object(data, path))
    except ValidationError as exc:
        raise ApiError(f"Unexpected task response from {path}: {exc}") from exc


class HubsAPI:
    """Hub-related API operations (composition over HubClient).

    Replies that do not have the documented shape raise :class:`ApiError`.
    """

    def __init__(self, client: HubClient) -> None:
        self._client = client

    async def _list(self, path: str, key: str) -> list[dict[str, Any]]:
        data = _expect_object(await self._client.get(path), path)
        items: list[dict[str, Any]] = data.get(key) or []
        return items

    async def list_hubs(self) -> list[dict[str, Any]]:
        return await self._list("/api/hubs", "hubs")

    async def list_ports(self, hub_id: str) -> list[dict[str, Any]]:
        return await self._list(f"/api/hubs/{hub_id}/ports", "ports")

    async def list_connections(self, hub_id: str) -> list[dict[str, Any]]:
        return await self._list(f"/api/hubs/{hub_id}/connections", "connections")

    async def _submit(self, hub_id: str, action: str, body: dict[str, Any]) -> TaskStatusResponse:
        path = f"/api/hubs/{hub_id}/commands/{action}"
        return _task_response(await self._client.post(path, json=body), path)

    async def send_restart_command(
        self, hub_id: str, port_id: str, priority: int | None = None
    ) -> TaskStatusResponse:
        return await self._submit(hub_id, "restart", {"port_id": port_id, "priority": priority})

    async def send_serial_write(
        self, hub_id: str, port_id: str, payload: str, priority: int | None = None
    ) -> TaskStatusResponse:
        return await self._submit(
            hub_id, "write", {"port_id": port_id, "data": payload, "priority": priority}
        )

    async def send_flash_command(
        self, hub_id: str, port_id: str, hex_file_content: str, priority: int | None = None
    ) -> TaskStatusResponse:
        return await self._submit(
            hub_id,
            "flash",
            {"port_id": port_id, "hex_file_content": hex_file_content, "priority": priority},
        )

    async def close_connection(
        self, hub_id: str, port_id: str, priority: int | None = None
    ) -> TaskStatusResponse:
        """Close a serial session.

        This endpoint answers ``{commandId, hubId, status, message}``
        instead of a task body, so it is adapted here.  Without a
        ``commandId`` no status echo could ever match the task.
        """
        path = f"/api/hubs/{hub_id}/commands/close"
        effective = 1 if priority is None else priority
        data = _expect_object(
            await self._client.post(path, json={"portId": port_id, "priority": effective}),
            path,
        )
        command_id = data.get("commandId")
        if not command_id:
            raise ApiError(f"Unexpected response from {path}: missing commandId")
        return TaskStatusResponse(
            task_id=str(command_id),
            command_type=CommandType.CLOSE.value,
            status=str(data.get("status") or "pending"),
            priority=effective,
            created_at=datetime.now(UTC),
        )
