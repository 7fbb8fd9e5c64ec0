"""Sensor mapping registry and line-format detection.

Mappings are tried in registration order and the first whose pattern
matches a line wins, so built-ins registered ahead of user schemas take
precedence over them.  Patterns are compiled case-insensitively and
matched with ``re.search`` semantics.
"""

from __future__ import annotations

import functools
import logging
import re
from typing import TYPE_CHECKING

from hubwatch.models.sensor import SensorField, SensorFormat, SensorMapping

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a mapping pattern.  Raises :class:`re.error` when invalid."""
    return re.compile(pattern, re.IGNORECASE)


# ---------------------------------------------------------------------------
# Built-in mappings
# ---------------------------------------------------------------------------

BUILTIN_MAPPINGS: list[SensorMapping] = [
    SensorMapping(
        id="dht22",
        name="DHT22 Temperature & Humidity",
        description="Key-value output like 'Temperature: 23.5 C Humidity: 41.0 %'",
        format=SensorFormat.KEY_VALUE,
        pattern=r"temp(?:erature)?[=:]\s*(-?[\d.]+).*?hum(?:idity)?[=:]\s*(-?[\d.]+)",
        fields=[
            SensorField(name="temperature", unit="°C", color="#FF6384", capture_group=1),
            SensorField(name="humidity", unit="%", color="#36A2EB", capture_group=2),
        ],
    ),
    SensorMapping(
        id="bmp280",
        name="BMP280 Pressure",
        description="Key-value output like 'pressure=1013.2 altitude=112.4'",
        format=SensorFormat.KEY_VALUE,
        pattern=r"pressure[=:]\s*(-?[\d.]+)\s*(?:hpa)?[\s,]*altitude[=:]\s*(-?[\d.]+)",
        fields=[
            SensorField(name="pressure", unit="hPa", color="#4BC0C0", capture_group=1),
            SensorField(name="altitude", unit="m", color="#9966FF", capture_group=2),
        ],
    ),
    SensorMapping(
        id="mpu6050",
        name="MPU6050 Accelerometer",
        description="Three comma-separated axes like '0.02,-0.98,9.81'",
        format=SensorFormat.CSV,
        pattern=r"^\s*(-?[\d.]+),\s*(-?[\d.]+),\s*(-?[\d.]+)\s*$",
        fields=[
            SensorField(name="accel_x", unit="m/s²", color="#FF6384", capture_group=1),
            SensorField(name="accel_y", unit="m/s²", color="#36A2EB", capture_group=2),
            SensorField(name="accel_z", unit="m/s²", color="#FFCE56", capture_group=3),
        ],
    ),
    SensorMapping(
        id="generic-json",
        name="Generic JSON",
        description="One JSON object per line; every numeric key becomes a series",
        format=SensorFormat.JSON,
        pattern=r"^\s*\{.*\}\s*$",
        fields=[SensorField(name="value", capture_group=1)],
    ),
]


class MappingRegistry:
    """Ordered collection of sensor mappings.

    Usage::

        registry = MappingRegistry.with_builtins()
        registry.extend(schema_store.load())
        mapping = registry.detect("temp=23.5 hum=40")
    """

    def __init__(self, mappings: Iterable[SensorMapping] | None = None) -> None:
        self._mappings: list[SensorMapping] = list(mappings or [])

    @classmethod
    def with_builtins(cls) -> MappingRegistry:
        return cls(BUILTIN_MAPPINGS)

    def __iter__(self) -> Iterator[SensorMapping]:
        return iter(list(self._mappings))

    def __len__(self) -> int:
        return len(self._mappings)

    def register(self, mapping: SensorMapping) -> None:
        """Append *mapping*, replacing any existing mapping with the same id in place."""
        for i, existing in enumerate(self._mappings):
            if existing.id == mapping.id:
                self._mappings[i] = mapping
                return
        self._mappings.append(mapping)

    def extend(self, mappings: Iterable[SensorMapping]) -> None:
        for mapping in mappings:
            self.register(mapping)

    def unregister(self, mapping_id: str) -> bool:
        """Remove a mapping by id.  Returns ``True`` if it existed."""
        before = len(self._mappings)
        self._mappings = [m for m in self._mappings if m.id != mapping_id]
        return len(self._mappings) != before

    def get(self, mapping_id: str) -> SensorMapping | None:
        for mapping in self._mappings:
            if mapping.id == mapping_id:
                return mapping
        return None

    def detect(self, line: str) -> SensorMapping | None:
        """Return the first registered mapping whose pattern matches *line*.

        A mapping with an invalid pattern is logged and skipped; detection
        carries on with the remaining mappings.
        """
        for mapping in self._mappings:
            if not mapping.is_detectable:
                continue
            try:
                regex = compile_pattern(mapping.pattern)
            except re.error as exc:
                logger.debug("Invalid pattern for sensor mapping %s: %s", mapping.id, exc)
                continue
            if regex.search(line):
                return mapping
        return None
