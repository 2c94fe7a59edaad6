"""
Orchestrator — Local work pool for locally-handled commands

Usage:
    from tsunami.orchestrator import IOPool, OrchestratorConfig, local_task

    pool = IOPool(OrchestratorConfig.from_env())
    future = pool.submit(local_task(fn=processor.respond, args=(command,)))
    result = future.result()     # TaskResult
    pool.drain()
    pool.shutdown()

Configuration via environment variables:
    TSUNAMI_IO_WORKERS=4           # Thread pool size
    TSUNAMI_SHUTDOWN_TIMEOUT=10    # Drain timeout at shutdown (seconds)
"""

from .config import OrchestratorConfig
from .task import Task, TaskStatus, TaskResult, local_task
from .pools import IOPool, PoolStats


__all__ = [
    "OrchestratorConfig",
    "Task",
    "TaskStatus",
    "TaskResult",
    "local_task",
    "IOPool",
    "PoolStats",
]
