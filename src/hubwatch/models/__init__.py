from __future__ import annotations

from hubwatch.models.config import AppSettings, StreamConfig
from hubwatch.models.messages import (
    ActiveSubscription,
    DeviceEventMessage,
    DeviceSubscription,
    HealthMessage,
    StreamMessage,
    SubscribeMessage,
    SubscriptionStatusMessage,
    TaskStatusMessage,
    TelemetryStreamMessage,
    UnsubscribeMessage,
    device_key,
    parse_stream_message,
)
from hubwatch.models.sensor import (
    ParsedSensorData,
    SensorField,
    SensorFormat,
    SensorMapping,
    SensorReading,
)
from hubwatch.models.task import (
    CommandResult,
    CommandType,
    Task,
    TaskStatus,
    TaskStatusResponse,
    TaskStatusUpdate,
)

__all__ = [
    # config
    "AppSettings",
    "StreamConfig",
    # messages
    "ActiveSubscription",
    "DeviceEventMessage",
    "DeviceSubscription",
    "HealthMessage",
    "StreamMessage",
    "SubscribeMessage",
    "SubscriptionStatusMessage",
    "TaskStatusMessage",
    "TelemetryStreamMessage",
    "UnsubscribeMessage",
    "device_key",
    "parse_stream_message",
    # sensor
    "ParsedSensorData",
    "SensorField",
    "SensorFormat",
    "SensorMapping",
    "SensorReading",
    # task
    "CommandResult",
    "CommandType",
    "Task",
    "TaskStatus",
    "TaskStatusResponse",
    "TaskStatusUpdate",
]
