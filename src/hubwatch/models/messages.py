"""Stream message models.

Inbound frames are discriminated on their ``type`` field; anything that
does not validate against one of the known shapes is dropped by the
connection manager.  Wire names are camelCase for hub/port identifiers
and snake_case for task fields, matching what the server sends.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DeviceSubscription(_WireModel):
    """One serial channel on one hub."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    hub_id: str = Field(alias="hubId")
    port_id: str = Field(alias="portId")

    @property
    def key(self) -> str:
        return device_key(self.hub_id, self.port_id)


class ActiveSubscription(DeviceSubscription):
    """A subscription the user is currently watching."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=False)

    subscribed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="subscribedAt"
    )
    sensor_type: str | None = Field(default=None, alias="sensorType")
    sensor_name: str | None = Field(default=None, alias="sensorName")


def device_key(hub_id: str, port_id: str) -> str:
    """Return the ``hub:port`` key used to index per-device state."""
    return f"{hub_id}:{port_id}"


# -- Inbound ------------------------------------------------------------------


class TelemetryStreamMessage(_WireModel):
    type: Literal["telemetry_stream"] = "telemetry_stream"
    hub_id: str = Field(alias="hubId")
    port_id: str = Field(alias="portId")
    session_id: str = Field(default="", alias="sessionId")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: str = ""
    """Base64-encoded serial bytes."""
    data_size_bytes: int | None = Field(default=None, alias="dataSizeBytes")


class TaskStatusMessage(_WireModel):
    type: Literal["task_status"] = "task_status"
    task_id: str
    status: Literal["pending", "running", "completed", "failed"]
    result: Any = None
    error: str | None = None
    timestamp: datetime | None = None


class DeviceEventMessage(_WireModel):
    type: Literal["device_event"] = "device_event"
    hub_id: str = Field(alias="hubId")
    port_id: str = Field(alias="portId")
    event: Literal["connected", "disconnected"]
    timestamp: datetime | None = None


class SubscriptionState(_WireModel):
    hub_id: str = Field(alias="hubId")
    port_id: str = Field(alias="portId")
    status: Literal["active", "inactive"]


class SubscriptionStatusMessage(_WireModel):
    type: Literal["subscription_status"] = "subscription_status"
    subscriptions: list[SubscriptionState] = Field(default_factory=list)


class HealthMessage(_WireModel):
    type: Literal["health"] = "health"
    hub_id: str = Field(default="", alias="hubId")
    timestamp: datetime | None = None
    cpu_percent: float | None = None
    memory_percent: float | None = None
    disk_percent: float | None = None


StreamMessage = Annotated[
    TelemetryStreamMessage
    | TaskStatusMessage
    | DeviceEventMessage
    | SubscriptionStatusMessage
    | HealthMessage,
    Field(discriminator="type"),
]

STREAM_MESSAGE_ADAPTER: TypeAdapter[StreamMessage] = TypeAdapter(StreamMessage)


def parse_stream_message(raw: str | bytes) -> StreamMessage:
    """Validate one inbound JSON frame.

    Raises :class:`pydantic.ValidationError` for malformed JSON, unknown
    ``type`` values, or missing fields.
    """
    return STREAM_MESSAGE_ADAPTER.validate_json(raw)


# -- Outbound -----------------------------------------------------------------


class SubscribeMessage(_WireModel):
    type: Literal["subscribe"] = "subscribe"
    subscriptions: list[DeviceSubscription]


class UnsubscribeMessage(_WireModel):
    type: Literal["unsubscribe"] = "unsubscribe"
    subscriptions: list[DeviceSubscription]


OutboundMessage = SubscribeMessage | UnsubscribeMessage
