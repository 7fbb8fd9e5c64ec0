"""Coalescing change notifier.

High-rate streams can ingest hundreds of frames a second; listeners
(renderers, dashboards) only need to hear about it a few times a second.
:class:`UpdateThrottle` collects the keys of devices that changed and
delivers them in batches at most once per *interval*, firing on the
leading edge and again on the trailing edge so the final state is never
missed.  Data itself is never dropped; only notifications are merged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.25


class UpdateThrottle:
    """Batch dirty device keys and flush them to listeners.

    Without a running event loop, every :meth:`notify` flushes
    immediately.
    """

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval = interval
        self._clock = clock
        self._listeners: list[Callable[[frozenset[str]], None]] = []
        self._dirty: set[str] = set()
        self._last_flush: float | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._flush_count = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def flush_count(self) -> int:
        return self._flush_count

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._dirty)

    def add_listener(self, callback: Callable[[frozenset[str]], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that removes it."""
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def notify(self, key: str) -> None:
        """Mark *key* as changed and flush now or schedule a flush."""
        self._dirty.add(key)
        if self._handle is not None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return

        now = self._clock()
        if self._last_flush is None or now - self._last_flush >= self._interval:
            self.flush()
            return
        delay = self._interval - (now - self._last_flush)
        self._handle = loop.call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._handle = None
        self.flush()

    def flush(self) -> None:
        """Deliver pending keys to every listener now."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if not self._dirty:
            return
        keys = frozenset(self._dirty)
        self._dirty.clear()
        self._last_flush = self._clock()
        self._flush_count += 1
        for listener in list(self._listeners):
            try:
                listener(keys)
            except Exception:
                logger.warning("Update listener %s failed", listener, exc_info=True)

    def cancel(self) -> None:
        """Drop any scheduled flush (pending keys are kept)."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
