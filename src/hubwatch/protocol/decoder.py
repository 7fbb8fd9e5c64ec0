"""Decode base64 serial frames into text lines.

Hubs forward raw serial bytes as base64 inside ``telemetry_stream``
messages.  Bytes are decoded as UTF-8 with replacement characters so a
partial multi-byte sequence at a frame boundary never raises.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass
class DecodedTelemetry:
    """Bytes, text, and non-empty lines produced from one frame."""

    raw: bytes = b""
    text: str = ""
    lines: list[str] = field(default_factory=list)


def decode_frame(data: str | bytes) -> DecodedTelemetry:
    """Decode one base64 payload.

    Invalid base64 degrades to an empty :class:`DecodedTelemetry`.
    """
    try:
        raw = base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError):
        logger.debug("Dropping frame with invalid base64 payload (%d chars)", len(data))
        return DecodedTelemetry()

    text = raw.decode("utf-8", errors="replace")
    lines = [line for line in _LINE_SPLIT.split(text) if line.strip()]
    return DecodedTelemetry(raw=raw, text=text, lines=lines)


def hex_dump(data: bytes, bytes_per_line: int = 16) -> str:
    """Return a classic ``offset  hex  |ascii|`` dump of *data*.

    Example line::

        00000000  74 65 6D 70 3D 32 33 2E   35 0A                     |temp=23.5.      |
    """
    out: list[str] = []
    for offset in range(0, len(data), bytes_per_line):
        chunk = data[offset : offset + bytes_per_line]
        hex_part: list[str] = []
        ascii_part: list[str] = []
        for j in range(bytes_per_line):
            if j < len(chunk):
                byte = chunk[j]
                hex_part.append(f"{byte:02X}")
                ascii_part.append(chr(byte) if 32 <= byte <= 126 else ".")
            else:
                hex_part.append("  ")
                ascii_part.append(" ")
            if j == 7:
                hex_part.append(" ")
        out.append(f"{offset:08X}  {' '.join(hex_part)}  |{''.join(ascii_part)}|\n")
    return "".join(out)
