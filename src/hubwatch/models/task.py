"""Pydantic v2 models for tracked device commands."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class CommandType(StrEnum):
    """Device commands dispatched through the hub HTTP API."""

    RESTART = "restart"
    SERIAL_WRITE = "serial_write"
    FLASH = "flash"
    CLOSE = "close"

    @property
    def label(self) -> str:
        return _COMMAND_LABELS[self]


_COMMAND_LABELS: dict[CommandType, str] = {
    CommandType.RESTART: "Restart",
    CommandType.SERIAL_WRITE: "Serial Write",
    CommandType.FLASH: "Flash",
    CommandType.CLOSE: "Close Connection",
}


class TaskStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        return self in (TaskStatus.PENDING, TaskStatus.RUNNING)

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class TaskStatusResponse(BaseModel):
    """Body returned by the command endpoints."""

    task_id: str
    command_type: str
    status: str
    priority: int = 1
    result: Any = None
    error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    completed_at: datetime | None = None


class Task(BaseModel):
    """A tracked asynchronous device command."""

    task_id: str
    command_type: str
    status: TaskStatus = TaskStatus.PENDING
    priority: int = 1
    port_id: str
    hub_id: str
    result: Any = None
    error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    completed_at: datetime | None = None


class TaskStatusUpdate(BaseModel):
    """A status echo for one task (from the stream or a timeout)."""

    task_id: str
    status: TaskStatus
    result: Any = None
    error: str | None = None


class CommandResult(BaseModel):
    """Structured outcome of a command submission.

    Submissions never raise: conflicts, backend rejections, and transport
    errors all come back as ``success=False`` with an ``error`` message.
    """

    success: bool
    task_id: str = ""
    response: TaskStatusResponse | None = None
    error: str | None = None
    conflict: bool = False
    timed_out: bool = False
