"""Streaming connection to the hub server and inbound message routing."""

from __future__ import annotations

from hubwatch.stream.connection import StreamConnection, backoff_delay
from hubwatch.stream.router import MessageRouter
from hubwatch.stream.subscriptions import SubscriptionRegistry

__all__ = [
    "MessageRouter",
    "StreamConnection",
    "SubscriptionRegistry",
    "backoff_delay",
]
