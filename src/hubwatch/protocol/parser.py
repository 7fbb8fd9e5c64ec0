"""Parse decoded lines into numeric sensor readings.

The parser is stateless: callers pass in the mapping detected on a
previous frame (if any) and get back the mapping in effect after this
frame.  Per-device stickiness is owned by
:class:`~hubwatch.telemetry.store.TelemetryStore`.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from hubwatch.models.sensor import ParsedSensorData, SensorFormat, SensorReading
from hubwatch.protocol.decoder import DecodedTelemetry, decode_frame
from hubwatch.protocol.mappings import compile_pattern

if TYPE_CHECKING:
    from hubwatch.models.sensor import SensorMapping
    from hubwatch.protocol.mappings import MappingRegistry

logger = logging.getLogger(__name__)

# Colors assigned to JSON keys by position (repeats after eight fields).
JSON_PALETTE: tuple[str, ...] = (
    "#FF6384",
    "#36A2EB",
    "#FFCE56",
    "#4BC0C0",
    "#9966FF",
    "#FF9F40",
    "#FF6384",
    "#C9CBCF",
)

# Leading decimal number, the way a lenient float parser reads "23.5C".
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def default_color(index: int) -> str:
    return JSON_PALETTE[index % len(JSON_PALETTE)]


def parse_number(text: str | None) -> float | None:
    """Parse the numeric prefix of *text*, or return ``None``."""
    if text is None:
        return None
    m = _FLOAT_PREFIX.match(text)
    if m is None:
        return None
    value = float(m.group(1))
    return value if math.isfinite(value) else None


@dataclass
class FrameParseResult:
    """Everything produced from one frame."""

    decoded: DecodedTelemetry
    parsed: list[ParsedSensorData] = field(default_factory=list)
    detected_mapping: SensorMapping | None = None


def parse_line(
    line: str,
    mapping: SensorMapping,
    *,
    timestamp: datetime | None = None,
) -> ParsedSensorData | None:
    """Apply *mapping* to one line.

    Returns ``None`` when nothing numeric could be extracted.  Individual
    fields that fail to parse are dropped rather than failing the line.
    """
    ts = timestamp or datetime.now(UTC)
    if mapping.format == SensorFormat.JSON:
        readings = _parse_json(line)
    else:
        readings = _parse_pattern(line, mapping)

    if not readings:
        return None
    return ParsedSensorData(
        sensor_id=mapping.id,
        sensor_name=mapping.name,
        timestamp=ts,
        fields=readings,
    )


def _parse_json(line: str) -> list[SensorReading]:
    try:
        record: Any = json.loads(line)
    except ValueError:
        return []
    if not isinstance(record, dict):
        return []

    numeric: list[tuple[str, float]] = []
    for key, value in record.items():
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except OverflowError:
            logger.debug("Dropping out-of-range JSON value for %r", key)
            continue
        if math.isfinite(number):
            numeric.append((key, number))

    # Palette position counts kept fields only.
    return [
        SensorReading(name=key, value=number, unit="", color=default_color(i))
        for i, (key, number) in enumerate(numeric)
    ]


def _parse_pattern(line: str, mapping: SensorMapping) -> list[SensorReading]:
    try:
        regex = compile_pattern(mapping.pattern)
    except re.error:
        return []
    match = regex.search(line)
    if match is None:
        return []

    readings: list[SensorReading] = []
    for sensor_field in mapping.fields:
        try:
            captured = match.group(sensor_field.capture_group)
        except IndexError:
            continue
        value = parse_number(captured)
        if value is None:
            continue
        readings.append(
            SensorReading(
                name=sensor_field.name,
                value=value,
                unit=sensor_field.unit,
                color=sensor_field.color,
            )
        )
    return readings


def parse_frame(
    data: str | bytes,
    registry: MappingRegistry,
    previous_mapping: SensorMapping | None = None,
    *,
    timestamp: datetime | None = None,
) -> FrameParseResult:
    """Decode a frame and parse every line against the sticky mapping.

    If no mapping is known yet, each line is run through detection until
    one matches; that mapping then applies to the rest of the frame and
    is returned as ``detected_mapping`` for the caller to pass back in
    next time.  Lines before the first detection are skipped.
    """
    decoded = decode_frame(data)
    result = FrameParseResult(decoded=decoded, detected_mapping=previous_mapping)

    for line in decoded.lines:
        if result.detected_mapping is None:
            result.detected_mapping = registry.detect(line)
            if result.detected_mapping is None:
                continue
        parsed = parse_line(line, result.detected_mapping, timestamp=timestamp)
        if parsed is not None:
            result.parsed.append(parsed)

    return result
