"""
DocumentSnapshotStore — Versioned text snapshots of project files

Holds, per logical file path, the latest text snapshot and its version.
The logical path is the file's identity; the bytes may come from a
different backing path (an editor's unsaved buffer written to a temp
file) without the logical file losing its identity or version history.

Versions:
- acquire() always starts a path at version 0
- update() bumps the version of a known path by exactly one,
  and behaves as acquire() for an unknown path
- a failed read changes nothing

Usage:
    store = DocumentSnapshotStore()
    store.acquire("src/a.ts")                        # version 0
    store.update("src/a.ts", source_path="/tmp/x")   # version 1, text of /tmp/x
    with store.locked("src/a.ts"):
        ...                                          # serialized per path
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from ..errors import SnapshotReadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Immutable capture of one file's text at one version."""
    file_path: str
    text: str
    version: int


class DocumentSnapshotStore:
    """
    Registry of the current snapshot of every tracked file.

    Safe to call from several threads. Callers that read-modify-index a
    file should hold locked(path) so updates of the same path never race.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._snapshots: Dict[str, Snapshot] = {}
        self._path_locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _read(self, path: str, source_path: Optional[str]) -> str:
        backing = source_path or path
        try:
            return Path(backing).read_bytes().decode(self.encoding)
        except OSError as e:
            raise SnapshotReadError(path, backing, e.strerror or str(e)) from e
        except UnicodeDecodeError as e:
            raise SnapshotReadError(path, backing, f"not valid {self.encoding}: {e.reason}") from e

    def acquire(self, path: str, source_path: Optional[str] = None) -> Snapshot:
        """
        Read a file fresh and register it at version 0.

        Args:
            path: Logical file path (identity)
            source_path: Read from here instead of path

        Raises:
            SnapshotReadError: If the backing file is missing or unreadable
        """
        text = self._read(path, source_path)
        snapshot = Snapshot(file_path=path, text=text, version=0)
        with self._guard:
            self._snapshots[path] = snapshot
        logger.debug("Acquired %s (version 0, %d chars)", path, len(text))
        return snapshot

    def update(self, path: str, source_path: Optional[str] = None) -> Snapshot:
        """
        Re-read a file and bump its version.

        Unknown paths are acquired instead.

        Raises:
            SnapshotReadError: If the backing file is missing or unreadable
        """
        with self._guard:
            known = path in self._snapshots
        if not known:
            return self.acquire(path, source_path)

        text = self._read(path, source_path)
        with self._guard:
            previous = self._snapshots.get(path)
            version = previous.version + 1 if previous is not None else 0
            snapshot = Snapshot(file_path=path, text=text, version=version)
            self._snapshots[path] = snapshot
        logger.debug("Updated %s (version %d, %d chars)", path, version, len(text))
        return snapshot

    def get(self, path: str) -> Optional[Snapshot]:
        """Current snapshot of a path, if tracked."""
        with self._guard:
            return self._snapshots.get(path)

    def paths(self) -> List[str]:
        """Tracked logical paths, in registration order."""
        with self._guard:
            return list(self._snapshots.keys())

    @contextmanager
    def locked(self, path: str) -> Iterator[None]:
        """
        Hold the per-path lock.

        Re-entrant, so a caller holding it may call helpers that take it too.
        Different paths never block each other.
        """
        with self._guard:
            lock = self._path_locks.setdefault(path, threading.RLock())
        with lock:
            yield

    def __contains__(self, path: str) -> bool:
        with self._guard:
            return path in self._snapshots

    def __len__(self) -> int:
        with self._guard:
            return len(self._snapshots)
