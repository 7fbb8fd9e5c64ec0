"""Line-protocol engine — frame decoding, schema detection, numeric parsing."""

from __future__ import annotations

from hubwatch.protocol.decoder import DecodedTelemetry, decode_frame, hex_dump
from hubwatch.protocol.mappings import BUILTIN_MAPPINGS, MappingRegistry
from hubwatch.protocol.parser import FrameParseResult, parse_frame, parse_line
from hubwatch.protocol.schemas import SchemaStore, generate_pattern, generate_print_statement

__all__ = [
    "BUILTIN_MAPPINGS",
    "DecodedTelemetry",
    "FrameParseResult",
    "MappingRegistry",
    "SchemaStore",
    "decode_frame",
    "generate_pattern",
    "generate_print_statement",
    "hex_dump",
    "parse_frame",
    "parse_line",
]
