"""Shared fixtures for telemetry store tests."""

from __future__ import annotations

import pytest

from hubwatch.protocol.mappings import MappingRegistry
from hubwatch.telemetry.store import TelemetryStore

# 2024-05-01T12:00:00Z in epoch milliseconds.
START_MS = 1_714_564_800_000


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> TelemetryStore:
    return TelemetryStore(MappingRegistry.with_builtins(), clock=clock)
