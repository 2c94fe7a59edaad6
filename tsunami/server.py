"""
ServerProcessManager — Lifecycle of the analysis server child process

Spawned once, after priming, with piped stdin/stdout. The server's
stderr is inherited so its diagnostics land next to ours.

Usage:
    server = ServerProcessManager(["tsserver"], cwd=project_dir)
    server.start()
    ...  # talk over server.stdin / server.stdout
    server.stop(timeout=5.0)
"""

import logging
import subprocess
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Union

from .errors import FatalStartupError

logger = logging.getLogger(__name__)


class ServerProcessManager:
    """Owns the analysis server process."""

    def __init__(
        self,
        command: List[str],
        cwd: Optional[Union[str, Path]] = None,
        process_factory: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        if not command:
            raise FatalStartupError("No analysis server command configured")
        self.command = list(command)
        self.cwd = str(cwd) if cwd is not None else None
        self._process_factory = process_factory
        self._process: Optional[subprocess.Popen] = None

    @property
    def process(self) -> subprocess.Popen:
        if self._process is None:
            raise RuntimeError("Analysis server is not running")
        return self._process

    @property
    def stdin(self) -> BinaryIO:
        return self.process.stdin

    @property
    def stdout(self) -> BinaryIO:
        return self.process.stdout

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> subprocess.Popen:
        """
        Spawn the server.

        Raises:
            FatalStartupError: If the command cannot be executed
        """
        if self._process is not None:
            raise RuntimeError("Analysis server already started")
        try:
            self._process = self._process_factory(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                cwd=self.cwd,
            )
        except OSError as e:
            raise FatalStartupError(f"Cannot start analysis server {self.command[0]!r}: {e.strerror or e}") from e
        logger.info("Started analysis server %s (pid %s)", " ".join(self.command), self._process.pid)
        return self._process

    def stop(self, timeout: float = 5.0) -> Optional[int]:
        """
        Close the server's stdin and wait; terminate, then kill, on timeout.

        Returns the exit code, or None if never started.
        """
        process = self._process
        if process is None:
            return None
        if process.stdin is not None and not process.stdin.closed:
            try:
                process.stdin.close()
            except OSError as e:
                logger.debug("Closing server stdin: %s", e)
        try:
            code = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Analysis server did not exit within %.1fs, terminating", timeout)
            process.terminate()
            try:
                code = process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("Analysis server ignored terminate, killing")
                process.kill()
                code = process.wait()
        if process.stdout is not None:
            process.stdout.close()
        logger.info("Analysis server exited with code %s", code)
        return code
