"""JSON envelopes for command output and one-line events for ``watch``."""

from __future__ import annotations

import dataclasses
import json
from collections import deque
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel


def to_jsonable(obj: Any) -> Any:
    """Reduce models, store records and containers to plain JSON values.

    Models keep their wire aliases (``hubId``, ``captureGroup``) and drop
    unset optionals.  Store records are slotted dataclasses, so they are
    walked field by field instead of through :func:`dataclasses.asdict`,
    which would not recurse into the deques they hold.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, dict):
        return {str(key): to_jsonable(value) for key, value in obj.items()}
    if isinstance(obj, list | tuple | deque):
        return [to_jsonable(item) for item in obj]
    return obj


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _envelope(command: str, ok: bool, body_key: str, body: Any) -> str:
    payload = {"ok": ok, "command": command, body_key: body, "timestamp": _now()}
    return json.dumps(payload, indent=2, default=str)


def format_json_response(*, data: Any, command: str) -> str:
    """``{"ok": true, "command", "data", "timestamp"}`` with *data* made JSON-safe."""
    return _envelope(command, True, "data", to_jsonable(data))


def format_json_error(*, code: str, message: str, command: str, **extra: Any) -> str:
    """``{"ok": false, "command", "error": {code, message, **extra}, "timestamp"}``."""
    return _envelope(command, False, "error", {"code": code, "message": message, **extra})


def format_json_event(*, event: str, data: Any) -> str:
    """One compact line per streamed event, suitable for ``jq`` or log shipping."""
    line = {"event": event, "data": to_jsonable(data), "timestamp": _now()}
    return json.dumps(line, default=str, separators=(",", ":"))
