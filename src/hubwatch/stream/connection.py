"""WebSocket connection manager for the hub server client stream.

One :class:`StreamConnection` owns one logical session to
``ws(s)://<server>/ws/client?token=<credential>``.  Callers can subscribe,
unsubscribe, and send at any time: while the socket is down, subscription
intents are queued (deduplicated) and flushed as a single batched
``subscribe`` message once the connection opens.

Unintentional closes are retried with exponential backoff
(1s base → 30s max, 10 attempts).  After the last attempt the manager
stays down until :meth:`StreamConnection.connect` is called again.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import websockets.asyncio.client as ws_client
from pydantic import ValidationError

from hubwatch.models.config import StreamConfig
from hubwatch.models.messages import (
    DeviceSubscription,
    SubscribeMessage,
    UnsubscribeMessage,
    parse_stream_message,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from hubwatch.models.messages import OutboundMessage, StreamMessage

    MessageHandler = Callable[[StreamMessage], Awaitable[None] | None]

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Seconds to wait before reconnect attempt ``attempt + 1``."""
    return float(min(base * 2**attempt, cap))


def _as_subscriptions(
    target: str | DeviceSubscription | Iterable[DeviceSubscription],
    port_id: str | None,
) -> list[DeviceSubscription]:
    if isinstance(target, str):
        if port_id is None:
            raise TypeError("port_id is required when hub_id is given as a string")
        return [DeviceSubscription(hub_id=target, port_id=port_id)]
    if isinstance(target, DeviceSubscription):
        return [target]
    return list(target)


class StreamConnection:
    """Manages the streaming WebSocket session to the hub server.

    Inbound frames are validated into :data:`StreamMessage` models and
    broadcast to every handler registered with :meth:`on_message`.
    Frames that fail validation are logged and dropped.
    """

    def __init__(self, config: StreamConfig | None = None, *, token: str | None = None) -> None:
        self._config = config or StreamConfig()
        self._credential = token
        self._ws: Any = None
        self._connected = False
        self._connecting = False
        self._intentional_close = False
        self._gave_up = False
        self._attempts = 0
        self._pending: list[DeviceSubscription] = []
        self._handlers: list[MessageHandler] = []
        self._recv_task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task[bool] | None = None
        self._recv_count = 0

    # -- State ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def is_connected(self) -> bool:
        return self._connected and self._ws is not None

    @property
    def attempts(self) -> int:
        """Reconnect attempts scheduled since the last successful open."""
        return self._attempts

    @property
    def gave_up(self) -> bool:
        return self._gave_up

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def recv_count(self) -> int:
        return self._recv_count

    def has_pending_subscription(self, hub_id: str, port_id: str) -> bool:
        return any(s.hub_id == hub_id and s.port_id == port_id for s in self._pending)

    def pending_subscriptions(self) -> list[DeviceSubscription]:
        return list(self._pending)

    def _stream_url(self) -> str:
        if not self._credential:
            return self._config.url
        sep = "&" if "?" in self._config.url else "?"
        return f"{self._config.url}{sep}{urlencode({'token': self._credential})}"

    # -- Handlers ---------------------------------------------------------------

    def on_message(self, handler: MessageHandler) -> Callable[[], None]:
        """Register *handler* for every inbound message.

        Returns a function that removes the handler again.
        """
        self._handlers.append(handler)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._handlers.remove(handler)

        return _remove

    async def _dispatch(self, message: StreamMessage) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning(
                    "Message handler %r failed on %s", handler, message.type, exc_info=True
                )

    # -- Lifecycle --------------------------------------------------------------

    async def connect(self, credential: str | None = None) -> bool:
        """Open the session if it is not already open.

        *credential* replaces the stored token when given.  A manual call
        clears the given-up state and restarts the attempt count.  Returns
        ``True`` when the socket is open afterwards; failures are logged
        and handed to the reconnect schedule, never raised.
        """
        if credential is not None:
            self._credential = credential
        if self._gave_up:
            self._gave_up = False
            self._attempts = 0
        self._cancel_reconnect()
        return await self._open()

    async def _open(self) -> bool:
        if self.is_connected or self._connecting:
            return self.is_connected
        self._connecting = True
        self._intentional_close = False
        try:
            ws = await ws_client.connect(self._stream_url())
        except Exception as exc:
            logger.warning("Failed to connect to %s: %s", self._config.url, exc)
            self._schedule_reconnect()
            return False
        finally:
            self._connecting = False

        if self._intentional_close:
            # disconnect() ran during the handshake
            logger.info("Discarding stream session opened after disconnect")
            with contextlib.suppress(Exception):
                await ws.close()
            return False

        self._ws = ws
        self._connected = True
        self._attempts = 0
        logger.info("Connected to stream at %s", self._config.url)

        pending, self._pending = self._pending, []
        if pending:
            logger.info("Flushing %d queued subscription(s)", len(pending))
            await self.send(SubscribeMessage(subscriptions=pending))

        self._recv_task = asyncio.create_task(self._receive_loop())
        return True

    async def disconnect(self) -> None:
        """Close the session on purpose; no reconnect will follow."""
        self._intentional_close = True
        self._connected = False
        self._cancel_reconnect()
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconnect_task
        self._reconnect_task = None
        task = self._recv_task
        self._recv_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._ws is not None:
            with contextlib.suppress(Exception):
                await self._ws.close()
            self._ws = None
        logger.info("Disconnected from stream")

    async def _receive_loop(self) -> None:
        ws = self._ws
        try:
            async for raw in ws:
                try:
                    message = parse_stream_message(raw)
                except ValidationError as exc:
                    logger.warning("Dropping malformed stream frame: %s", exc.errors()[:1])
                    continue
                self._recv_count += 1
                await self._dispatch(message)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Stream receive loop error: %s", exc)
        if self._ws is ws:
            self._connected = False
            self._ws = None
            with contextlib.suppress(Exception):
                await ws.close()
        logger.info("Stream connection closed")
        self._schedule_reconnect()

    # -- Reconnect --------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if self._intentional_close or self._reconnect_handle is not None:
            return
        if self._attempts >= self._config.max_attempts:
            self._gave_up = True
            logger.error(
                "Giving up on %s after %d reconnect attempts", self._config.url, self._attempts
            )
            return
        delay = backoff_delay(self._attempts, self._config.backoff_base, self._config.backoff_max)
        self._attempts += 1
        logger.info(
            "Reconnecting in %.1fs (attempt %d/%d)",
            delay,
            self._attempts,
            self._config.max_attempts,
        )
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._reconnect_now)

    def _reconnect_now(self) -> None:
        self._reconnect_handle = None
        if self._intentional_close:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._open())

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # -- Outbound ---------------------------------------------------------------

    async def send(self, message: OutboundMessage) -> bool:
        """Serialize and send *message*.  Dropped (and logged) when closed."""
        if not self.is_connected:
            logger.debug("Not connected; dropping %s message", message.type)
            return False
        try:
            await self._ws.send(message.model_dump_json(by_alias=True))
        except Exception as exc:
            logger.warning("Send failed (%s); connection will be re-established", exc)
            return False
        return True

    async def subscribe(
        self,
        target: str | DeviceSubscription | Iterable[DeviceSubscription],
        port_id: str | None = None,
    ) -> None:
        """Subscribe to one ``(hub_id, port_id)`` pair or a list of them.

        While disconnected the intents are queued once per pair and a
        connection attempt is started with the last known credential.
        """
        subs = _as_subscriptions(target, port_id)
        if not subs:
            return
        if self.is_connected:
            await self.send(SubscribeMessage(subscriptions=subs))
            return

        for sub in subs:
            if not self.has_pending_subscription(sub.hub_id, sub.port_id):
                self._pending.append(sub)
        logger.debug("Queued %d subscription(s) until connected", len(self._pending))
        if (
            self._credential
            and not self._connecting
            and not self._gave_up
            and self._reconnect_handle is None
        ):
            await self._open()

    async def unsubscribe(
        self,
        target: str | DeviceSubscription | Iterable[DeviceSubscription],
        port_id: str | None = None,
    ) -> None:
        """Unsubscribe now, or drop matching queued intents while disconnected."""
        subs = _as_subscriptions(target, port_id)
        if not subs:
            return
        if self.is_connected:
            await self.send(UnsubscribeMessage(subscriptions=subs))
            return
        keys = {s.key for s in subs}
        self._pending = [s for s in self._pending if s.key not in keys]
