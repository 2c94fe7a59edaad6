"""
Task — Unit of local work

- Task: one locally-handled command, bound to the function that answers it
- TaskResult: outcome of running a task

Tasks are immutable after creation.
"""

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Any, Dict, Optional
from datetime import datetime, timezone
import xxhash


class TaskStatus(Enum):
    """Task lifecycle states."""
    COMPLETED = "completed"
    FAILED = "failed"


_task_counter = itertools.count(1)


@dataclass(frozen=True)
class Task:
    """
    Unit of local work.

    Immutable after creation. Carries all context needed for execution.
    """
    # Identity
    id: str = field(default_factory=lambda: _generate_task_id())

    # Execution
    fn: Callable = field(default=None)
    args: tuple = field(default_factory=tuple)
    kwargs: Dict[str, Any] = field(default_factory=dict)

    # Metadata (for observability)
    name: str = ""
    command: str = ""  # Protocol command that created this
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if isinstance(other, Task):
            return self.id == other.id
        return False


@dataclass
class TaskResult:
    """Outcome of task execution."""
    task_id: str
    status: TaskStatus
    result: Any = None
    error: Optional[str] = None

    # Timing
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_ms: Optional[float] = None

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.COMPLETED


def _generate_task_id() -> str:
    """Generate unique task ID using xxhash."""
    seed = f"{datetime.now(timezone.utc).isoformat()}:{next(_task_counter)}"
    return xxhash.xxh64(seed.encode()).hexdigest()[:12]


def local_task(
    fn: Callable,
    args: tuple = (),
    kwargs: Dict[str, Any] = None,
    name: str = "",
    command: str = "",
) -> Task:
    """
    Create a task for a locally-handled command.

    Example:
        task = local_task(fn=processor.respond, args=(command,), command=command.command)
    """
    return Task(
        fn=fn,
        args=args,
        kwargs=kwargs or {},
        name=name,
        command=command,
    )
