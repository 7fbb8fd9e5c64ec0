"""Tests for TaskTracker transitions and timeouts."""

from __future__ import annotations

import asyncio

import pytest

from hubwatch.models.task import Task, TaskStatus, TaskStatusUpdate
from hubwatch.tasks.tracker import TIMEOUT_ERROR, TaskTracker


def _task(task_id: str = "t1", port: str = "ttyUSB0") -> Task:
    return Task(task_id=task_id, command_type="restart", port_id=port, hub_id="hub-1")


def _update(task_id: str, status: TaskStatus, **kwargs: object) -> TaskStatusUpdate:
    return TaskStatusUpdate(task_id=task_id, status=status, **kwargs)


class TestTransitions:
    def test_running_then_completed(self) -> None:
        tracker = TaskTracker()
        tracker.add(_task())

        running = tracker.apply_status(_update("t1", TaskStatus.RUNNING))
        assert running is not None
        assert running.started_at is not None
        assert running.completed_at is None

        done = tracker.apply_status(_update("t1", TaskStatus.COMPLETED, result={"ok": True}))
        assert done is not None
        assert done.status == TaskStatus.COMPLETED
        assert done.result == {"ok": True}
        assert done.started_at == running.started_at
        assert done.completed_at is not None

    def test_repeated_update_is_idempotent(self) -> None:
        tracker = TaskTracker()
        tracker.add(_task())
        first = tracker.apply_status(_update("t1", TaskStatus.RUNNING))
        second = tracker.apply_status(_update("t1", TaskStatus.RUNNING))
        assert first is not None and second is not None
        assert second.started_at == first.started_at

        done = tracker.apply_status(_update("t1", TaskStatus.FAILED, error="x"))
        again = tracker.apply_status(_update("t1", TaskStatus.FAILED, error="x"))
        assert done is not None and again is not None
        assert again.completed_at == done.completed_at

    def test_finished_task_ignores_late_running(self) -> None:
        tracker = TaskTracker()
        tracker.add(_task())
        tracker.apply_status(_update("t1", TaskStatus.COMPLETED))
        task = tracker.apply_status(_update("t1", TaskStatus.RUNNING))
        assert task is not None
        assert task.status == TaskStatus.COMPLETED

    def test_unknown_task(self) -> None:
        assert TaskTracker().apply_status(_update("nope", TaskStatus.RUNNING)) is None

    def test_active_task_for_port(self) -> None:
        tracker = TaskTracker()
        tracker.add(_task("t1", "a"))
        tracker.add(_task("t2", "b"))
        active = tracker.active_task_for("a")
        assert active is not None and active.task_id == "t1"

        tracker.apply_status(_update("t1", TaskStatus.COMPLETED))
        assert tracker.active_task_for("a") is None

    def test_cleanup_terminal(self) -> None:
        tracker = TaskTracker()
        tracker.add(_task("t1"))
        tracker.add(_task("t2", "b"))
        tracker.apply_status(_update("t1", TaskStatus.FAILED))
        assert tracker.cleanup_terminal() == 1
        assert [t.task_id for t in tracker.list_all()] == ["t2"]

    def test_listeners_see_changes(self) -> None:
        tracker = TaskTracker()
        seen: list[TaskStatus] = []

        def broken(task: Task) -> None:
            raise RuntimeError("boom")

        tracker.add_listener(broken)
        remove = tracker.add_listener(lambda t: seen.append(t.status))
        tracker.add(_task())
        tracker.apply_status(_update("t1", TaskStatus.RUNNING))
        remove()
        tracker.apply_status(_update("t1", TaskStatus.COMPLETED))
        assert seen == [TaskStatus.PENDING, TaskStatus.RUNNING]


class TestTimeouts:
    @pytest.mark.asyncio
    async def test_timeout_fails_task_once(self) -> None:
        tracker = TaskTracker()
        failures: list[Task] = []
        tracker.add_listener(lambda t: failures.append(t) if t.status == "failed" else None)
        tracker.add(_task())
        tracker.schedule_timeout("t1", 0.01)

        await asyncio.sleep(0.05)
        task = tracker.get("t1")
        assert task is not None
        assert task.status == TaskStatus.FAILED
        assert task.error == TIMEOUT_ERROR
        assert tracker.timed_out("t1") is True
        assert len(failures) == 1

        tracker.apply_status(_update("t1", TaskStatus.COMPLETED))
        assert tracker.get("t1").status == TaskStatus.COMPLETED  # type: ignore[union-attr]
        assert len(failures) == 1

    @pytest.mark.asyncio
    async def test_terminal_update_cancels_timeout(self) -> None:
        tracker = TaskTracker()
        tracker.add(_task())
        tracker.schedule_timeout("t1", 0.01)
        tracker.apply_status(_update("t1", TaskStatus.COMPLETED))

        await asyncio.sleep(0.05)
        task = tracker.get("t1")
        assert task is not None
        assert task.status == TaskStatus.COMPLETED
        assert tracker.timed_out("t1") is False

    @pytest.mark.asyncio
    async def test_cancel_timeouts(self) -> None:
        tracker = TaskTracker()
        tracker.add(_task())
        tracker.schedule_timeout("t1", 0.01)
        tracker.cancel_timeouts()

        await asyncio.sleep(0.05)
        assert tracker.get("t1").status == TaskStatus.PENDING  # type: ignore[union-attr]
