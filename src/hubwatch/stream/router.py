"""Routes inbound stream messages to the store, tracker, and subscriptions.

The router is registered as a handler on a :class:`StreamConnection`:

- ``telemetry_stream`` → :meth:`TelemetryStore.ingest`, and the detected
  sensor is recorded on the matching subscription
- ``task_status`` → :meth:`TaskTracker.apply_status`
- ``device_event`` with ``disconnected`` → unsubscribe and forget the
  subscription
- ``subscription_status`` / ``health`` → kept for display
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hubwatch.models.messages import (
    DeviceEventMessage,
    HealthMessage,
    SubscriptionStatusMessage,
    TaskStatusMessage,
    TelemetryStreamMessage,
    device_key,
)
from hubwatch.models.task import TaskStatus, TaskStatusUpdate

if TYPE_CHECKING:
    from collections.abc import Callable

    from hubwatch.models.messages import StreamMessage
    from hubwatch.stream.connection import StreamConnection
    from hubwatch.stream.subscriptions import SubscriptionRegistry
    from hubwatch.tasks.tracker import TaskTracker
    from hubwatch.telemetry.store import TelemetryStore

logger = logging.getLogger(__name__)


class MessageRouter:
    """Dispatches each :data:`StreamMessage` to the component that owns it."""

    def __init__(
        self,
        connection: StreamConnection,
        store: TelemetryStore,
        tracker: TaskTracker,
        subscriptions: SubscriptionRegistry,
    ) -> None:
        self._connection = connection
        self._store = store
        self._tracker = tracker
        self._subscriptions = subscriptions
        self._remove_handler: Callable[[], None] | None = None
        self.server_status: dict[str, str] = {}
        self.hub_health: dict[str, HealthMessage] = {}

    def attach(self) -> None:
        """Start receiving messages from the connection."""
        if self._remove_handler is None:
            self._remove_handler = self._connection.on_message(self.route)

    def detach(self) -> None:
        if self._remove_handler is not None:
            self._remove_handler()
            self._remove_handler = None

    async def route(self, message: StreamMessage) -> None:
        match message:
            case TelemetryStreamMessage():
                self._on_telemetry(message)
            case TaskStatusMessage():
                self._on_task_status(message)
            case DeviceEventMessage():
                await self._on_device_event(message)
            case SubscriptionStatusMessage():
                for state in message.subscriptions:
                    self.server_status[device_key(state.hub_id, state.port_id)] = state.status
            case HealthMessage():
                self.hub_health[message.hub_id] = message

    def _on_telemetry(self, message: TelemetryStreamMessage) -> None:
        state = self._store.ingest(message)
        if state.sensor_mapping is not None:
            self._subscriptions.record_sensor(
                message.hub_id, message.port_id, state.sensor_mapping
            )

    def _on_task_status(self, message: TaskStatusMessage) -> None:
        self._tracker.apply_status(
            TaskStatusUpdate(
                task_id=message.task_id,
                status=TaskStatus(message.status),
                result=message.result,
                error=message.error,
            )
        )

    async def _on_device_event(self, message: DeviceEventMessage) -> None:
        key = device_key(message.hub_id, message.port_id)
        if message.event != "disconnected":
            logger.info("Device %s connected", key)
            return
        logger.info("Device %s disconnected; dropping subscription", key)
        await self._connection.unsubscribe(message.hub_id, message.port_id)
        self._subscriptions.remove(message.hub_id, message.port_id)
