"""Tests for AppSettings and stream URL derivation."""

from __future__ import annotations

import pytest

from hubwatch.models.config import AppSettings, StreamConfig, stream_url_for


class TestStreamUrl:
    @pytest.mark.parametrize(
        ("api_url", "expected"),
        [
            ("http://localhost:8080", "ws://localhost:8080/ws/client"),
            ("https://hubs.example.com/", "wss://hubs.example.com/ws/client"),
            ("hub.local:9000", "ws://hub.local:9000/ws/client"),
        ],
    )
    def test_stream_url_for(self, api_url: str, expected: str) -> None:
        assert stream_url_for(api_url) == expected


class TestAppSettings:
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HUBWATCH_API_URL", "https://hubs.example.com")
        monkeypatch.setenv("HUBWATCH_RECONNECT_ATTEMPTS", "3")
        settings = AppSettings(_env_file=None)  # type: ignore[call-arg]
        assert settings.stream_url == "wss://hubs.example.com/ws/client"
        config = settings.stream_config()
        assert config.max_attempts == 3
        assert config.backoff_base == 1.0
        assert config.backoff_max == 30.0

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("HUBWATCH_API_URL", raising=False)
        settings = AppSettings(_env_file=None)  # type: ignore[call-arg]
        assert settings.command_timeout == 30.0
        assert settings.update_interval == 0.25


class TestStreamConfig:
    def test_rejects_non_positive_backoff(self) -> None:
        with pytest.raises(ValueError):
            StreamConfig(backoff_base=0)
