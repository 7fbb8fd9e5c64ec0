"""Routes command results to JSON envelopes or Rich tables."""

from __future__ import annotations

import sys
from typing import IO, Any

from rich.console import Console

from hubwatch.output import json_output
from hubwatch.output.rich_output import RichOutput

FORMATS = ("rich", "json", "quiet")


def detect_format(stream: IO[str]) -> str:
    """``"rich"`` for an interactive terminal, ``"json"`` when piped or redirected."""
    isatty = getattr(stream, "isatty", None)
    return "rich" if isatty is not None and isatty() else "json"


class OutputFormatter:
    """One formatter per CLI invocation.

    ``quiet`` keeps stdout empty: Rich messages such as errors go to
    stderr and results are not printed at all.
    """

    def __init__(self, *, stream: IO[str] | None = None, force_format: str | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._format = force_format or detect_format(self._stream)
        if self._format not in FORMATS:
            raise ValueError(f"unknown output format {self._format!r}")
        console = Console(stderr=True) if self._format == "quiet" else Console(file=self._stream)
        self._rich = RichOutput(console)

    @property
    def format(self) -> str:  # noqa: A003
        return self._format

    @property
    def rich(self) -> RichOutput:
        return self._rich

    def _emit(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()

    def output(self, data: Any, *, command: str) -> None:
        """Print *data* as a JSON envelope; Rich callers render tables themselves."""
        if self._format == "json":
            self._emit(json_output.format_json_response(data=data, command=command))
        elif self._format == "rich":
            self._rich.info(str(data))

    def output_event(self, event: str, data: Any) -> None:
        if self._format == "json":
            self._emit(json_output.format_json_event(event=event, data=data))

    def output_error(self, *, code: str, message: str, command: str, **extra: Any) -> None:
        if self._format == "json":
            self._emit(
                json_output.format_json_error(
                    code=code, message=message, command=command, **extra
                )
            )
        else:
            self._rich.error(message)
