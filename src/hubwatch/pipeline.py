"""Long-lived telemetry pipeline service.

Composes the stream connection, telemetry store, task tracker, command
service, and message router behind one object with an explicit
lifecycle:

    init (after auth) → subscribe / query / command → teardown (on logout)

Usage::

    async with pipeline_session(settings) as pipeline:
        await pipeline.subscribe("hub-1", "ttyUSB0")
        ...
    # teardown is guaranteed (timeouts cancelled → socket closed → client closed)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from hubwatch.api.client import HubClient
from hubwatch.api.errors import AuthError
from hubwatch.api.hubs import HubsAPI
from hubwatch.protocol.mappings import MappingRegistry
from hubwatch.protocol.schemas import SchemaStore
from hubwatch.stream.connection import StreamConnection
from hubwatch.stream.router import MessageRouter
from hubwatch.stream.subscriptions import SubscriptionRegistry
from hubwatch.tasks.commands import CommandService
from hubwatch.tasks.tracker import TaskTracker
from hubwatch.telemetry.series import TimeWindow
from hubwatch.telemetry.store import TelemetryStore
from hubwatch.telemetry.throttle import UpdateThrottle

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from hubwatch.models.config import AppSettings
    from hubwatch.models.messages import ActiveSubscription
    from hubwatch.models.task import Task
    from hubwatch.telemetry.series import DeviceTelemetryState, FieldChartData

logger = logging.getLogger(__name__)


class TelemetryPipeline:
    """All client-side components for one authenticated session.

    Construct once and pass it to consumers; nothing here is a module
    global.  :meth:`init` is idempotent and :meth:`teardown` releases
    every timer, socket, and HTTP connection.
    """

    def __init__(
        self,
        settings: AppSettings,
        *,
        client: HubClient | None = None,
        schema_store: SchemaStore | None = None,
    ) -> None:
        self.settings = settings
        self.client = client or HubClient(settings.api_url, access_token=settings.access_token)
        self.api = HubsAPI(self.client)

        self.registry = MappingRegistry.with_builtins()
        self.schema_store = schema_store or SchemaStore(
            Path(settings.config_dir).expanduser() / "schemas.json"
        )

        self.store = TelemetryStore(
            self.registry, throttle=UpdateThrottle(settings.update_interval)
        )
        self.tracker = TaskTracker()
        self.commands = CommandService(
            self.api, self.tracker, default_timeout=settings.command_timeout
        )
        self.subscriptions = SubscriptionRegistry()
        self.connection = StreamConnection(
            settings.stream_config(), token=settings.access_token
        )
        self.router = MessageRouter(
            self.connection, self.store, self.tracker, self.subscriptions
        )
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def authenticate(self) -> str:
        """Return a usable access token, logging in with username/password if needed."""
        if self.client.access_token:
            return self.client.access_token
        if not (self.settings.username and self.settings.password):
            raise AuthError(
                "No access token configured. Set HUBWATCH_ACCESS_TOKEN or "
                "HUBWATCH_USERNAME / HUBWATCH_PASSWORD."
            )
        return await self.client.login(self.settings.username, self.settings.password)

    async def init(self, credential: str | None = None) -> None:
        """Load user schemas, attach the router, and open the stream."""
        if self._initialized:
            return
        token = credential or await self.authenticate()
        if credential:
            self.client.set_access_token(credential)

        user_schemas = self.schema_store.load()
        self.registry.extend(user_schemas)
        if user_schemas:
            logger.info("Loaded %d user sensor schema(s)", len(user_schemas))

        self.router.attach()
        await self.connection.connect(token)
        self._initialized = True

    async def teardown(self) -> None:
        """Release everything acquired by :meth:`init` (call on logout)."""
        self.router.detach()
        self.tracker.cancel_timeouts()
        self.store.throttle.cancel()
        await self.connection.disconnect()
        self.subscriptions.clear()
        await self.client.close()
        self._initialized = False

    # -- Subscriptions ----------------------------------------------------------

    async def subscribe(self, hub_id: str, port_id: str) -> ActiveSubscription:
        sub = self.subscriptions.add(hub_id, port_id)
        await self.connection.subscribe(hub_id, port_id)
        return sub

    async def unsubscribe(self, hub_id: str, port_id: str) -> None:
        await self.connection.unsubscribe(hub_id, port_id)
        self.subscriptions.remove(hub_id, port_id)

    # -- Queries ----------------------------------------------------------------

    def get_chart_data(
        self, hub_id: str, port_id: str, window: TimeWindow | str = TimeWindow.ONE_HOUR
    ) -> list[FieldChartData]:
        return self.store.get_chart_data(hub_id, port_id, window)

    def get_device_data(self, hub_id: str, port_id: str) -> DeviceTelemetryState | None:
        return self.store.get_device_data(hub_id, port_id)

    def get_active_task_for_port(self, port_id: str) -> Task | None:
        return self.tracker.active_task_for(port_id)


@asynccontextmanager
async def pipeline_session(
    settings: AppSettings,
    *,
    credential: str | None = None,
) -> AsyncIterator[TelemetryPipeline]:
    """Run a :class:`TelemetryPipeline` for the duration of the block."""
    pipeline = TelemetryPipeline(settings)
    try:
        await pipeline.init(credential)
        yield pipeline
    finally:
        await pipeline.teardown()
