"""End-to-end tests for TelemetryPipeline over a fake stream socket."""

from __future__ import annotations

import asyncio
import base64
import json
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, patch

import pytest

from hubwatch.api.errors import AuthError
from hubwatch.models.config import AppSettings
from hubwatch.models.sensor import SensorField, SensorMapping
from hubwatch.pipeline import TelemetryPipeline, pipeline_session
from hubwatch.protocol.schemas import SchemaStore

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_httpx import HTTPXMock

BASE = "http://hub.test"


class FakeSocket:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def feed(self, payload: dict[str, Any]) -> None:
        self._inbox.put_nowait(json.dumps(payload))

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item


def _settings(tmp_path: Path, **overrides: Any) -> AppSettings:
    values: dict[str, Any] = {
        "api_url": BASE,
        "access_token": "tok",
        "config_dir": str(tmp_path),
        "update_interval": 0.0,
    }
    values.update(overrides)
    return AppSettings(_env_file=None, **values)  # type: ignore[call-arg]


async def _until(predicate: Any, timeout: float = 1.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


def _frame(text: str, port: str = "ttyUSB0") -> dict[str, Any]:
    return {
        "type": "telemetry_stream",
        "hubId": "hub-1",
        "portId": port,
        "sessionId": "s1",
        "data": base64.b64encode(text.encode()).decode(),
    }


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_init_connects_with_token(self, tmp_path: Path) -> None:
        sock = FakeSocket()
        pipeline = TelemetryPipeline(_settings(tmp_path))
        with patch("websockets.asyncio.client.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = sock
            await pipeline.init()
            await pipeline.init()

        mock_connect.assert_called_once_with("ws://hub.test/ws/client?token=tok")
        assert pipeline.initialized is True
        assert pipeline.connection.is_connected is True

        await pipeline.teardown()
        assert sock.closed is True
        assert pipeline.initialized is False

    @pytest.mark.asyncio
    async def test_authenticate_requires_credentials(self, tmp_path: Path) -> None:
        pipeline = TelemetryPipeline(_settings(tmp_path, access_token=None))
        with pytest.raises(AuthError):
            await pipeline.authenticate()
        await pipeline.client.close()

    @pytest.mark.asyncio
    async def test_authenticate_logs_in(self, tmp_path: Path, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/auth/login", json={"access_token": "fresh"})
        pipeline = TelemetryPipeline(
            _settings(tmp_path, access_token=None, username="admin", password="pw")
        )
        assert await pipeline.authenticate() == "fresh"
        await pipeline.client.close()

    @pytest.mark.asyncio
    async def test_user_schemas_loaded_on_init(self, tmp_path: Path) -> None:
        SchemaStore(tmp_path / "schemas.json").add(
            SensorMapping(
                id="tank",
                name="Tank",
                pattern=r"flow[=:]\s*([\d.]+)",
                fields=[SensorField(name="flow")],
            )
        )
        with patch("websockets.asyncio.client.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = FakeSocket()
            async with pipeline_session(_settings(tmp_path)) as pipeline:
                assert pipeline.registry.get("tank") is not None

    @pytest.mark.asyncio
    async def test_session_tears_down_on_error(self, tmp_path: Path) -> None:
        sock = FakeSocket()
        with patch("websockets.asyncio.client.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = sock
            with pytest.raises(RuntimeError):
                async with pipeline_session(_settings(tmp_path)) as pipeline:
                    await pipeline.subscribe("hub-1", "ttyUSB0")
                    raise RuntimeError("boom")

        assert sock.closed is True
        assert len(pipeline.subscriptions) == 0


class TestDataFlow:
    @pytest.mark.asyncio
    async def test_subscribe_then_telemetry(self, tmp_path: Path) -> None:
        sock = FakeSocket()
        with patch("websockets.asyncio.client.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = sock
            async with pipeline_session(_settings(tmp_path)) as pipeline:
                sub = await pipeline.subscribe("hub-1", "ttyUSB0")
                assert sock.sent[-1] == {
                    "type": "subscribe",
                    "subscriptions": [{"hubId": "hub-1", "portId": "ttyUSB0"}],
                }

                sock.feed(_frame("temp=22.5 hum=41\n"))
                await _until(lambda: pipeline.get_device_data("hub-1", "ttyUSB0") is not None)

                series = pipeline.get_chart_data("hub-1", "ttyUSB0", "5m")
                assert [s.field_name for s in series] == ["temperature", "humidity"]
                assert series[0].data[-1].value == 22.5
                assert sub.sensor_type == "dht22"

                await pipeline.unsubscribe("hub-1", "ttyUSB0")
                assert sock.sent[-1]["type"] == "unsubscribe"
                assert len(pipeline.subscriptions) == 0

    @pytest.mark.asyncio
    async def test_command_tracked_until_echo(
        self, tmp_path: Path, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=f"{BASE}/api/hubs/hub-1/commands/restart",
            json={"task_id": "task-1", "command_type": "restart", "status": "pending"},
        )
        sock = FakeSocket()
        with patch("websockets.asyncio.client.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = sock
            async with pipeline_session(_settings(tmp_path)) as pipeline:
                result = await pipeline.commands.restart("hub-1", "ttyUSB0")
                assert result.success is True
                assert pipeline.get_active_task_for_port("ttyUSB0") is not None

                sock.feed({"type": "task_status", "task_id": "task-1", "status": "completed"})
                await _until(lambda: pipeline.get_active_task_for_port("ttyUSB0") is None)
                task = pipeline.tracker.get("task-1")
                assert task is not None
                assert task.completed_at is not None

    @pytest.mark.asyncio
    async def test_device_disconnect_drops_subscription(self, tmp_path: Path) -> None:
        sock = FakeSocket()
        with patch("websockets.asyncio.client.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = sock
            async with pipeline_session(_settings(tmp_path)) as pipeline:
                await pipeline.subscribe("hub-1", "ttyUSB0")
                sock.feed(
                    {
                        "type": "device_event",
                        "hubId": "hub-1",
                        "portId": "ttyUSB0",
                        "event": "disconnected",
                    }
                )
                await _until(lambda: len(pipeline.subscriptions) == 0)
                assert sock.sent[-1]["type"] == "unsubscribe"
