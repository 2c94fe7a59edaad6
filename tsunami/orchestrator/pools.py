"""
IOPool — Thread pool for locally-handled commands

Local answers read files and parse them; threads keep the reader pump
free while that happens. The pool never raises a task's exception to
the caller: failures come back as TaskResult(status=FAILED).
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, Future
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Set

from .task import Task, TaskResult, TaskStatus
from .config import OrchestratorConfig

logger = logging.getLogger(__name__)


@dataclass
class PoolStats:
    """Statistics for pool observability."""
    active_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    total_duration_ms: float = 0.0

    @property
    def avg_duration_ms(self) -> float:
        if self.completed_tasks == 0:
            return 0.0
        return self.total_duration_ms / self.completed_tasks

    def to_dict(self) -> dict:
        return {
            "active_tasks": self.active_tasks,
            "completed_tasks": self.completed_tasks,
            "failed_tasks": self.failed_tasks,
            "avg_duration_ms": round(self.avg_duration_ms, 2)
        }


class IOPool:
    """
    ThreadPool for local command work.

    Usage:
        pool = IOPool(OrchestratorConfig.from_env())
        future = pool.submit(local_task(fn=work, args=(x,)))
        future.result().success
        pool.shutdown()
    """

    def __init__(self, config: OrchestratorConfig):
        config.validate()
        self._config = config
        self._executor = ThreadPoolExecutor(
            max_workers=config.io_workers,
            thread_name_prefix="tsunami-io-"
        )
        self._stats = PoolStats()
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._pending: Set[Future] = set()
        self._shutdown = False

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def submit(self, task: Task) -> Future:
        """
        Submit a task for execution.

        Returns a Future resolving to a TaskResult.

        Raises:
            RuntimeError: If the pool is shut down
        """
        with self._lock:
            if self._shutdown:
                raise RuntimeError("Pool is shut down")
            self._stats.active_tasks += 1
            future = self._executor.submit(self._execute_task, task)
            self._pending.add(future)

        future.add_done_callback(lambda f: self._on_complete(f, task))
        return future

    def _execute_task(self, task: Task) -> TaskResult:
        """Execute a task with error handling."""
        started_at = datetime.now(timezone.utc)

        try:
            result = task.fn(*task.args, **task.kwargs)

            completed_at = datetime.now(timezone.utc)
            duration_ms = (completed_at - started_at).total_seconds() * 1000

            return TaskResult(
                task_id=task.id,
                status=TaskStatus.COMPLETED,
                result=result,
                started_at=started_at.isoformat(),
                completed_at=completed_at.isoformat(),
                duration_ms=duration_ms
            )

        except Exception as e:
            logger.exception("Task %s (%s) failed", task.id, task.name or task.command)
            completed_at = datetime.now(timezone.utc)
            duration_ms = (completed_at - started_at).total_seconds() * 1000

            return TaskResult(
                task_id=task.id,
                status=TaskStatus.FAILED,
                error=str(e),
                started_at=started_at.isoformat(),
                completed_at=completed_at.isoformat(),
                duration_ms=duration_ms
            )

    def _on_complete(self, future: Future, task: Task) -> None:
        """Callback when task completes."""
        with self._lock:
            self._stats.active_tasks -= 1
            self._pending.discard(future)
            self._idle.notify_all()

            if future.cancelled():
                self._stats.failed_tasks += 1
                return
            result = future.result()
            if result.success:
                self._stats.completed_tasks += 1
                self._stats.total_duration_ms += result.duration_ms or 0
            else:
                self._stats.failed_tasks += 1

    def drain(self, timeout: float = None) -> bool:
        """
        Wait for every submitted task to finish.

        Returns True if nothing is left in flight. Completion callbacks,
        and with them the stats, have run for every drained task.
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def stats(self) -> PoolStats:
        """Get pool statistics."""
        with self._lock:
            return PoolStats(
                active_tasks=self._stats.active_tasks,
                completed_tasks=self._stats.completed_tasks,
                failed_tasks=self._stats.failed_tasks,
                total_duration_ms=self._stats.total_duration_ms
            )

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the pool."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
        self._executor.shutdown(wait=wait)
