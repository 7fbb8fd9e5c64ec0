from __future__ import annotations


class HubwatchError(Exception):
    """Base class for all hubwatch errors."""


class ConfigError(HubwatchError):
    """Missing or invalid configuration (credentials, URLs, files)."""


class ApiError(HubwatchError):
    """The hub server returned an error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(ApiError):
    """Credentials were rejected (HTTP 401/403)."""


class NotFoundError(ApiError):
    """Hub, port, or task does not exist (HTTP 404)."""


class NetworkError(HubwatchError):
    """The request never got a response (DNS, refused, timeout)."""
