"""Hub server REST API."""

from __future__ import annotations

from hubwatch.api.client import HubClient
from hubwatch.api.errors import (
    ApiError,
    AuthError,
    ConfigError,
    HubwatchError,
    NetworkError,
    NotFoundError,
)
from hubwatch.api.hubs import HubsAPI

__all__ = [
    "ApiError",
    "AuthError",
    "ConfigError",
    "HubClient",
    "HubsAPI",
    "HubwatchError",
    "NetworkError",
    "NotFoundError",
]
