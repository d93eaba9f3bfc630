"""Deferred execution tests."""

from __future__ import annotations

from tabstate.scheduling import DeferredQueue, run_immediately


def test_run_immediately_executes_synchronously() -> None:
    seen: list[str] = []

    run_immediately(lambda: seen.append("ran"))

    assert seen == ["ran"]


def test_queue_runs_tasks_in_submission_order() -> None:
    queue = DeferredQueue()
    seen: list[int] = []
    for value in range(3):
        queue(lambda value=value: seen.append(value))

    assert len(queue) == 3
    assert seen == []
    assert queue.run_pending() == 3
    assert seen == [0, 1, 2]
    assert len(queue) == 0


def test_tasks_deferred_while_draining_wait_for_next_tick() -> None:
    queue = DeferredQueue()
    seen: list[str] = []

    def outer() -> None:
        seen.append("outer")
        queue.defer(lambda: seen.append("inner"))

    queue.defer(outer)

    assert queue.run_pending() == 1
    assert seen == ["outer"]
    assert queue.run_pending() == 1
    assert seen == ["outer", "inner"]
    assert queue.run_pending() == 0
