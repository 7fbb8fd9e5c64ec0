"""Outstanding device command tracking.

Tasks move ``pending → running → completed|failed`` as status echoes
arrive on the stream, or straight to ``failed`` when their timeout
elapses first.  Finished tasks stay listed until :meth:`cleanup_terminal`
so a UI can show the final outcome for a moment.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from hubwatch.models.task import Task, TaskStatus, TaskStatusUpdate

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "Command timeout - no response received"


class TaskTracker:
    """Registry of tracked tasks with per-task timeouts.

    All methods must be called from the event loop thread; each one is a
    single synchronous read-modify-write, so interleaved coroutines and
    timer callbacks cannot lose updates.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._timeouts: dict[str, asyncio.TimerHandle] = {}
        self._timed_out: set[str] = set()
        self._listeners: list[Callable[[Task], None]] = []

    def add_listener(self, callback: Callable[[Task], None]) -> Callable[[], None]:
        """Register a callback invoked with the task after every change.

        Returns a function that removes the callback again.
        """
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def _changed(self, task: Task) -> None:
        for listener in self._listeners:
            try:
                listener(task)
            except Exception:
                logger.warning("Task listener failed for %s", task.task_id, exc_info=True)

    # -- Lookup -----------------------------------------------------------------

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def list_all(self) -> list[Task]:
        return list(self._tasks.values())

    def active_task_for(self, port_id: str) -> Task | None:
        """Return the pending or running task on *port_id*, if any."""
        for task in self._tasks.values():
            if task.port_id == port_id and task.status.is_active:
                return task
        return None

    def timed_out(self, task_id: str) -> bool:
        return task_id in self._timed_out

    # -- Mutation ---------------------------------------------------------------

    def add(self, task: Task) -> Task:
        self._tasks[task.task_id] = task
        logger.info(
            "Tracking %s task %s on %s:%s",
            task.command_type,
            task.task_id,
            task.hub_id,
            task.port_id,
        )
        self._changed(task)
        return task

    def apply_status(self, update: TaskStatusUpdate) -> Task | None:
        """Merge a status echo into its task.

        Repeated updates are harmless: ``started_at`` and ``completed_at``
        are stamped only on the first transition into running / a terminal
        state.  Once a task has finished, non-terminal echoes are ignored.
        Unknown task ids return ``None``.
        """
        task = self._tasks.get(update.task_id)
        if task is None:
            logger.debug("Status for untracked task %s ignored", update.task_id)
            return None
        if task.status.is_terminal and not update.status.is_terminal:
            logger.debug(
                "Ignoring %s for finished task %s (%s)",
                update.status.value,
                task.task_id,
                task.status.value,
            )
            return task

        changes: dict[str, object] = {"status": update.status}
        if update.result is not None:
            changes["result"] = update.result
        if update.error is not None:
            changes["error"] = update.error
        now = datetime.now(UTC)
        if update.status == TaskStatus.RUNNING and task.started_at is None:
            changes["started_at"] = now
        if update.status.is_terminal and task.completed_at is None:
            changes["completed_at"] = now

        updated = task.model_copy(update=changes)
        self._tasks[task.task_id] = updated
        if updated.status.is_terminal:
            self._cancel_timeout(task.task_id)
        if task.status != updated.status:
            logger.info(
                "Task %s %s -> %s", task.task_id, task.status.value, updated.status.value
            )
        self._changed(updated)
        return updated

    def remove(self, task_id: str) -> bool:
        self._cancel_timeout(task_id)
        self._timed_out.discard(task_id)
        return self._tasks.pop(task_id, None) is not None

    def cleanup_terminal(self) -> int:
        """Remove completed and failed tasks.  Returns how many were removed."""
        finished = [tid for tid, t in self._tasks.items() if t.status.is_terminal]
        for tid in finished:
            self.remove(tid)
        return len(finished)

    # -- Timeouts ---------------------------------------------------------------

    def schedule_timeout(self, task_id: str, seconds: float) -> None:
        """Fail *task_id* if it is still active after *seconds*.

        Must be called with a running event loop.  Rescheduling replaces
        any earlier timer for the same task.
        """
        self._cancel_timeout(task_id)
        loop = asyncio.get_running_loop()
        self._timeouts[task_id] = loop.call_later(seconds, self._on_timeout, task_id, seconds)

    def _on_timeout(self, task_id: str, seconds: float) -> None:
        self._timeouts.pop(task_id, None)
        task = self._tasks.get(task_id)
        if task is None or not task.status.is_active:
            return
        self._timed_out.add(task_id)
        logger.warning(
            "%s task %s on %s timed out after %.0fs",
            task.command_type,
            task_id,
            task.port_id,
            seconds,
        )
        self.apply_status(
            TaskStatusUpdate(task_id=task_id, status=TaskStatus.FAILED, error=TIMEOUT_ERROR)
        )

    def _cancel_timeout(self, task_id: str) -> None:
        handle = self._timeouts.pop(task_id, None)
        if handle is not None:
            handle.cancel()

    def cancel_timeouts(self) -> None:
        """Cancel every pending timeout timer (used on teardown)."""
        for handle in self._timeouts.values():
            handle.cancel()
        self._timeouts.clear()
