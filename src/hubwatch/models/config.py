from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StreamConfig(BaseModel):
    """Reconnect and URL settings for the streaming connection."""

    url: str = "ws://localhost:8080/ws/client"
    backoff_base: float = Field(default=1.0, gt=0)
    """Seconds before the first reconnect attempt."""
    backoff_max: float = Field(default=30.0, gt=0)
    """Upper bound on any single reconnect delay, in seconds."""
    max_attempts: int = Field(default=10, ge=0)
    """Reconnect attempts before giving up until a manual ``connect``."""


class AppSettings(BaseSettings):
    """Application-wide settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="HUBWATCH_",
        extra="ignore",
    )

    api_url: str = "http://localhost:8080"
    access_token: str | None = None
    username: str | None = None
    password: str | None = None
    config_dir: str = "~/.config/hubwatch"
    output_format: str | None = None
    reconnect_base: float = 1.0
    reconnect_max: float = 30.0
    reconnect_attempts: int = 10
    command_timeout: float = 30.0
    update_interval: float = 0.25

    @property
    def stream_url(self) -> str:
        """WebSocket endpoint derived from :attr:`api_url`."""
        return stream_url_for(self.api_url)

    def stream_config(self) -> StreamConfig:
        return StreamConfig(
            url=self.stream_url,
            backoff_base=self.reconnect_base,
            backoff_max=self.reconnect_max,
            max_attempts=self.reconnect_attempts,
        )


def stream_url_for(api_url: str) -> str:
    """Map an HTTP(S) base URL to the client WebSocket endpoint.

    ``https://`` becomes ``wss://``; anything else becomes ``ws://``.
    """
    base = api_url.rstrip("/")
    if base.startswith("https://"):
        return "wss://" + base[len("https://") :] + "/ws/client"
    if base.startswith("http://"):
        base = base[len("http://") :]
    return "ws://" + base + "/ws/client"
