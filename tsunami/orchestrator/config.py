"""
OrchestratorConfig — Configuration for the local work pool

Loads pool settings from environment variables.

Environment variables:
- TSUNAMI_IO_WORKERS: Thread pool size for locally-handled commands (default: 4)
- TSUNAMI_SHUTDOWN_TIMEOUT: Seconds to wait for in-flight work at shutdown (default: 10)
"""

import os
from dataclasses import dataclass


@dataclass
class OrchestratorConfig:
    """
    Configuration for the local work pool.

    Loaded from environment variables; unset variables keep the defaults.
    """

    io_workers: int = 4                    # ThreadPool size
    shutdown_timeout: float = 10.0         # Drain timeout (seconds)

    @classmethod
    def from_env(cls) -> 'OrchestratorConfig':
        """
        Load configuration from environment variables.

        Raises:
            ValueError: If a variable is set but not a number
        """
        return cls(
            io_workers=_get_int_env("TSUNAMI_IO_WORKERS", 4),
            shutdown_timeout=_get_float_env("TSUNAMI_SHUTDOWN_TIMEOUT", 10.0),
        )

    def validate(self) -> None:
        """Validate configuration values."""
        if self.io_workers < 1:
            raise ValueError("TSUNAMI_IO_WORKERS must be >= 1")
        if self.shutdown_timeout <= 0:
            raise ValueError("TSUNAMI_SHUTDOWN_TIMEOUT must be > 0")


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable. Unparseable values raise ValueError."""
    value = os.environ.get(key, "")
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got '{value}'") from None


def _get_float_env(key: str, default: float) -> float:
    """Get float from environment variable. Unparseable values raise ValueError."""
    value = os.environ.get(key, "")
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got '{value}'") from None
