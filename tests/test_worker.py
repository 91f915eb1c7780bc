"""Tests for the bounded task worker."""

from __future__ import annotations

import threading

import pytest

from slngraph.parsers.base import DescriptorError
from slngraph.runtime.worker import Task, Worker


def _fail(exc: Exception):
    def _raise():
        raise exc

    return _raise


@pytest.mark.parametrize("parallel", [False, True])
def test_results_follow_submission_order(parallel: bool) -> None:
    """Results come back in task order whatever the execution order."""
    tasks = [Task(task_id=str(i), func=lambda i=i: i * i) for i in range(20)]

    with Worker(max_workers=4, parallel=parallel) as worker:
        results = worker.run(tasks)

    assert [r.task_id for r in results] == [str(i) for i in range(20)]
    assert [r.result for r in results] == [i * i for i in range(20)]
    assert all(r.success for r in results)


def test_failures_are_captured_per_task() -> None:
    """A failing task does not abort the batch."""
    boom = DescriptorError("bad descriptor")
    unexpected = ZeroDivisionError("unexpected")
    tasks = [
        Task(task_id="ok", func=lambda: "fine"),
        Task(task_id="bad", func=_fail(boom)),
        Task(task_id="worse", func=_fail(unexpected)),
    ]

    with Worker(max_workers=2) as worker:
        results = worker.run(tasks)

    assert [r.success for r in results] == [True, False, False]
    assert results[1].error is boom
    assert results[2].error is unexpected


def test_duplicate_task_ids_run_once() -> None:
    """Later tasks reusing an ID are skipped."""
    calls: list[str] = []
    lock = threading.Lock()

    def record(name: str) -> str:
        with lock:
            calls.append(name)
        return name

    tasks = [
        Task(task_id="a", func=lambda: record("first")),
        Task(task_id="a", func=lambda: record("second")),
    ]

    results = Worker(parallel=True).run(tasks)

    assert [r.result for r in results] == ["first"]
    assert calls == ["first"]


def test_sequential_mode_runs_on_calling_thread() -> None:
    """Inline mode never starts pool threads."""
    caller = threading.get_ident()
    tasks = [Task(task_id=str(i), func=threading.get_ident) for i in range(3)]

    results = Worker(parallel=False).run(tasks)

    assert {r.result for r in results} == {caller}
