"""User-defined sensor schemas.

Helpers to build a detection pattern from a list of fields, to render the
matching Arduino ``Serial.print`` statement, and a small JSON-file store
for schemas the user has saved.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError

from hubwatch.models.sensor import SensorFormat, SensorMapping

if TYPE_CHECKING:
    from hubwatch.models.sensor import SensorField

logger = logging.getLogger(__name__)

_DEFAULT_STORE = Path("~/.config/hubwatch/schemas.json")

_MAPPING_LIST = TypeAdapter(list[SensorMapping])


def _field_key(name: str) -> str:
    return re.sub(r"\s+", "_", name.lower())


def generate_pattern(fmt: SensorFormat | str, fields: list[SensorField]) -> str:
    """Build a regex whose capture groups line up with *fields* in order."""
    if not fields:
        return ""
    fmt = SensorFormat(fmt)
    if fmt == SensorFormat.KEY_VALUE:
        return r"\s+".join(rf"{_field_key(f.name)}[=:]\s*([\d.]+)" for f in fields)
    if fmt == SensorFormat.CSV:
        return r",\s*".join(r"([\d.]+)" for _ in fields)
    return r",?\s*".join(rf'"{_field_key(f.name)}":\s*([\d.]+)' for f in fields)


def generate_print_statement(
    fmt: SensorFormat | str, pattern: str, fields: list[SensorField]
) -> str:
    """Render the Arduino print call that produces lines for this schema."""
    if not pattern or not fields:
        return 'Serial.println("...");'
    fmt = SensorFormat(fmt)
    keys = [_field_key(f.name) for f in fields]

    if fmt == SensorFormat.KEY_VALUE:
        statements = []
        for i, key in enumerate(keys):
            method = "println" if i == len(keys) - 1 else "print"
            statements.append(f'Serial.print("{key}="); Serial.{method}({key});')
        return " ".join(statements)
    if fmt == SensorFormat.CSV:
        joined = ' + "," + '.join(keys)
        return f"Serial.println({joined});"
    json_keys = ", ".join(f'\\"{key}\\": \\" + {key} + \\"' for key in keys)
    return f'Serial.println("{{ {json_keys} }}");'


class SchemaStore:
    """JSON-file-backed list of user-defined sensor mappings.

    Loaded into the :class:`~hubwatch.protocol.mappings.MappingRegistry`
    after the built-ins, so built-ins win when both could match a line.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self._path = (_DEFAULT_STORE if path is None else Path(path)).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[SensorMapping]:
        """Return saved schemas.  A missing or corrupt file yields ``[]``."""
        if not self._path.exists():
            return []
        try:
            return _MAPPING_LIST.validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.warning("Ignoring unreadable schema store %s: %s", self._path, exc)
            return []

    def _write(self, schemas: list[SensorMapping]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [s.model_dump(mode="json", by_alias=True) for s in schemas]
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def add(self, schema: SensorMapping) -> None:
        """Save *schema*, replacing an existing entry with the same id."""
        schemas = [s for s in self.load() if s.id != schema.id]
        schemas.append(schema)
        self._write(schemas)
        logger.info("Saved sensor schema %s to %s", schema.id, self._path)

    def remove(self, schema_id: str) -> bool:
        """Delete a schema by id.  Returns ``True`` if it existed."""
        schemas = self.load()
        kept = [s for s in schemas if s.id != schema_id]
        if len(kept) == len(schemas):
            return False
        self._write(kept)
        logger.info("Removed sensor schema %s", schema_id)
        return True
