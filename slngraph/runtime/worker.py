"""Bounded task executor shared by ingestion and source scanning.

Worker runs batches of independent tasks on a lazily created thread pool
and hands back one :class:`TaskResult` per task, in submission order. A
failing task never aborts its batch: the failure is captured in its result
and the caller decides what to log and skip.

In sequential mode the tasks run inline on the calling thread, which is
useful for debugging and produces the same results.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from slngraph.parsers.base import RECOVERABLE_ERRORS

logger = logging.getLogger("slngraph.runtime.worker")


@dataclass
class Task:
    """Unit of work.

    Attributes:
        task_id: Unique task identifier, usually the file being processed.
        func: Callable to execute.
        metadata: Optional task metadata.
    """

    task_id: str
    func: Callable[[], Any]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TaskResult:
    """Task execution result.

    Attributes:
        task_id: Task identifier.
        success: Whether execution succeeded.
        result: Return value from task function.
        error: Exception if task failed.
        execution_time: Time taken in seconds.
    """

    task_id: str
    success: bool
    result: Any = None
    error: Optional[Exception] = None
    execution_time: float = 0.0


class Worker:
    """Executes task batches with configurable parallelism.

    The pool is created on first use and may be shared by several threads
    submitting batches at the same time. Tasks must not submit to the same
    worker they run on.
    """

    def __init__(self, max_workers: int = 8, parallel: bool = True, name: str = "worker") -> None:
        """Initialize worker.

        Args:
            max_workers: Maximum concurrent threads.
            parallel: Run tasks on the pool when True, inline otherwise.
            name: Thread name prefix, also used in log messages.
        """
        self.max_workers = max(1, max_workers)
        self.parallel = parallel
        self.name = name
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        logger.debug(
            "Worker %s initialized (parallel=%s, max_workers=%d)",
            name,
            parallel,
            self.max_workers,
        )

    def __enter__(self) -> "Worker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix=self.name
                )
            return self._executor

    def _execute_task(self, task: Task) -> TaskResult:
        start_time = time.time()
        try:
            result = task.func()
        except RECOVERABLE_ERRORS as exc:
            logger.debug("Task %s failed: %s", task.task_id, exc)
            return TaskResult(
                task_id=task.task_id,
                success=False,
                error=exc,
                execution_time=time.time() - start_time,
            )
        except Exception as exc:
            logger.error(
                "Task %s failed with unexpected error: %s",
                task.task_id,
                exc,
                exc_info=True,
            )
            return TaskResult(
                task_id=task.task_id,
                success=False,
                error=exc,
                execution_time=time.time() - start_time,
            )
        return TaskResult(
            task_id=task.task_id,
            success=True,
            result=result,
            execution_time=time.time() - start_time,
        )

    def run(self, tasks: Sequence[Task]) -> List[TaskResult]:
        """Execute a batch and wait for all of it.

        Args:
            tasks: Tasks to execute. Later tasks reusing a task_id are skipped.

        Returns:
            List[TaskResult]: One result per unique task, in submission order.
        """
        unique: List[Task] = []
        seen = set()
        for task in tasks:
            if task.task_id in seen:
                logger.debug("Task %s already queued, skipping", task.task_id)
                continue
            seen.add(task.task_id)
            unique.append(task)

        if not self.parallel or len(unique) <= 1:
            return [self._execute_task(task) for task in unique]

        executor = self._get_executor()
        futures: List[Future] = [executor.submit(self._execute_task, task) for task in unique]
        results = [future.result() for future in futures]

        failed = sum(1 for r in results if not r.success)
        logger.debug(
            "Worker %s finished %d tasks (%d failed)", self.name, len(results), failed
        )
        return results

    def shutdown(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
