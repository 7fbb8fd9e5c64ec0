"""Registry of the device streams the user is currently watching."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hubwatch.models.messages import ActiveSubscription, device_key

if TYPE_CHECKING:
    from hubwatch.models.sensor import SensorMapping

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Active subscriptions keyed by ``hub:port``, in subscription order."""

    def __init__(self) -> None:
        self._subs: dict[str, ActiveSubscription] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._subs

    def __len__(self) -> int:
        return len(self._subs)

    def list_all(self) -> list[ActiveSubscription]:
        return list(self._subs.values())

    def get(self, hub_id: str, port_id: str) -> ActiveSubscription | None:
        return self._subs.get(device_key(hub_id, port_id))

    def add(self, hub_id: str, port_id: str) -> ActiveSubscription:
        """Record a subscription; an existing entry is returned unchanged."""
        key = device_key(hub_id, port_id)
        existing = self._subs.get(key)
        if existing is not None:
            return existing
        sub = ActiveSubscription(hub_id=hub_id, port_id=port_id)
        self._subs[key] = sub
        logger.info("Subscribed to %s", key)
        return sub

    def remove(self, hub_id: str, port_id: str) -> bool:
        key = device_key(hub_id, port_id)
        if self._subs.pop(key, None) is None:
            return False
        logger.info("Removed subscription %s", key)
        return True

    def record_sensor(self, hub_id: str, port_id: str, mapping: SensorMapping) -> None:
        """Attach the detected sensor type to the subscription, if present."""
        sub = self._subs.get(device_key(hub_id, port_id))
        if sub is None or sub.sensor_type == mapping.id:
            return
        sub.sensor_type = mapping.id
        sub.sensor_name = mapping.name

    def clear(self) -> None:
        self._subs.clear()
